class LinguaLensError(Exception):
    """
    Base class for errors reported to the application shell.
    """


class AssetLoadError(LinguaLensError):
    """
    The source image could not be decoded, or did not become ready in time.
    """


class DetectionError(LinguaLensError):
    """
    The detection/translation backend failed.
    """


class EditError(LinguaLensError):
    """
    The image editing backend failed.
    """
