from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from lingualens.backends import DummyBackend, OpenAIBackend, VisionBackend
from lingualens.compositor import DEFAULT_LOAD_TIMEOUT, DEFAULT_QUALITY, load_image
from lingualens.errors import LinguaLensError
from lingualens.models import Annotation, Mode
from lingualens.offsets import OffsetStore
from lingualens.session import LensSession


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input", type=Path, help="Path to input image")
    parser.add_argument("-o", "--output", type=Path, help="Path to output .jpg (default: timestamped name next to input)")
    parser.add_argument(
        "--backend",
        type=str,
        default="dummy",
        help="Backend id: dummy, openai or tesseract (default: dummy)",
    )
    parser.add_argument(
        "--backend-config",
        type=Path,
        help="Path to backend config file (JSON), passed to the backend as keyword arguments.",
    )
    parser.add_argument("--load-timeout", type=float, default=DEFAULT_LOAD_TIMEOUT, help="Seconds to wait for the image to decode.")
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="lingualens",
        description="Overlay translations on text found in images, or edit images with a prompt.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    translate = subparsers.add_parser("translate", help="Detect text and export an annotated image")
    _add_common_args(translate)
    translate.add_argument("--target-lang", type=str, default="zh-CN", help="Target language (default: zh-CN)")
    translate.add_argument(
        "--annotations",
        type=Path,
        help="Use annotations from this JSON file instead of running detection.",
    )
    translate.add_argument("--annotations-out", type=Path, help="Write detected annotations to this JSON file.")
    translate.add_argument(
        "--offsets",
        type=Path,
        help='JSON object of label offsets keyed by annotation index, e.g. {"0": {"x": 50, "y": -20}}.',
    )
    translate.add_argument("--preview", type=Path, help="Also write an overlay preview PNG to this path.")
    translate.add_argument("--preview-width", type=float, default=800, help="Width of the preview image in pixels.")
    translate.add_argument("--font", type=str, help="TrueType font for labels (default: first bold sans font found).")
    translate.add_argument("--quality", type=int, default=DEFAULT_QUALITY, help="JPEG quality of the export.")

    edit = subparsers.add_parser("edit", help="Edit an image with a free-text instruction")
    _add_common_args(edit)
    edit.add_argument("--prompt", type=str, required=True, help="What to change in the image.")

    return parser.parse_args(argv)


def load_backend(name: str, config_path: Optional[Path] = None) -> VisionBackend:
    config = {}
    if config_path:
        with config_path.open("r", encoding="utf-8") as f:
            config = json.load(f)
    normalized = name.lower()
    if normalized == "dummy":
        return DummyBackend(**config)
    if normalized == "openai":
        return OpenAIBackend(**config)
    if normalized in ("tesseract", "pytesseract"):
        from lingualens.ocr import OcrDetectionBackend

        translator_name = config.pop("translator", "dummy")
        translator_config = config.pop("translator_config", {})
        translator = OpenAIBackend(**translator_config) if translator_name == "openai" else DummyBackend()
        return OcrDetectionBackend(translator=translator, **config)
    raise ValueError(f"Unknown backend: {name}")


def load_annotations(path: Path) -> List[Annotation]:
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("annotations", [])
    if not isinstance(data, list):
        raise ValueError("Annotations file must be a JSON list or an object with an 'annotations' list")
    return [Annotation.from_dict(item) for item in data]


def load_offsets(path: Path) -> OffsetStore:
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError("Offsets file must be a JSON object keyed by annotation index")
    return OffsetStore.from_dict(data)


def run_translate(args: argparse.Namespace, session: LensSession) -> Path:
    logger = logging.getLogger(__name__)
    session.load_file(args.input)
    if args.annotations:
        session.state.annotations[:] = load_annotations(args.annotations)
        session.offsets.clear()
    else:
        result = session.detect()
        if result.no_text:
            logger.warning(result.message)

    if args.offsets:
        for index, offset in load_offsets(args.offsets).items():
            session.set_offset(index, offset)

    if args.annotations_out:
        payload = {
            "annotations": [a.to_dict() for a in session.state.annotations],
            "offsets": session.offsets.to_dict(),
        }
        args.annotations_out.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")

    if args.preview:
        overlay = session.overlay(args.preview_width)
        source = load_image(session.state.original, timeout=session.load_timeout)
        overlay.paint(source).save(args.preview, format="PNG")
        logger.info("Wrote preview to %s", args.preview)

    return session.save(args.input.parent, Mode.TRANSLATE, output_path=args.output)


def run_edit(args: argparse.Namespace, session: LensSession) -> Path:
    session.load_file(args.input)
    session.edit(args.prompt)
    return session.save(args.input.parent, Mode.STUDIO, output_path=args.output)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level))

    backend = load_backend(args.backend, args.backend_config)
    session = LensSession(
        backend=backend,
        target_lang=getattr(args, "target_lang", "zh-CN"),
        font_path=getattr(args, "font", None),
        load_timeout=args.load_timeout,
        quality=getattr(args, "quality", DEFAULT_QUALITY),
    )

    try:
        if args.command == "translate":
            output = run_translate(args, session)
        else:
            output = run_edit(args, session)
    except LinguaLensError as exc:
        logging.getLogger(__name__).error("%s", exc)
        return 1
    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
