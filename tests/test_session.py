from __future__ import annotations

import io
from datetime import datetime, timezone
from typing import List

import pytest
from PIL import Image

from lingualens.backends import DummyBackend, VisionBackend
from lingualens.errors import AssetLoadError, DetectionError, EditError
from lingualens.models import Annotation, Mode, Offset
from lingualens.session import NO_TEXT_MESSAGE, LensSession, download_name

SAMPLE = [
    {"original": "Exit", "translation": "出口", "box_2d": [100, 100, 200, 300]},
    {"original": "12", "translation": "12", "box_2d": [500, 500, 550, 560]},
]


class FailingBackend(VisionBackend):
    def detect(self, image_bytes: bytes, mime_type: str, target_lang: str = "zh-CN") -> List[Annotation]:
        raise RuntimeError("quota exceeded")

    def edit(self, image_bytes: bytes, prompt: str, mime_type: str) -> bytes:
        raise RuntimeError("model refused")


def _session(annotations=SAMPLE) -> LensSession:
    return LensSession(backend=DummyBackend(annotations=annotations))


def test_load_records_size_and_mime(make_image_bytes) -> None:
    session = _session()
    state = session.load(make_image_bytes(320, 200))
    assert session.has_image
    assert (state.width, state.height) == (320, 200)
    assert state.mime_type == "image/png"
    assert state.annotations == []
    assert state.processed is None


def test_load_rejects_non_image() -> None:
    session = _session()
    with pytest.raises(AssetLoadError):
        session.load(b"definitely not an image")
    assert not session.has_image


def test_detect_populates_annotations(make_image_bytes) -> None:
    session = _session()
    session.load(make_image_bytes())
    result = session.detect()
    assert not result.no_text
    assert result.message is None
    assert [a.original for a in session.state.annotations] == ["Exit", "12"]


def test_detect_clears_offsets(make_image_bytes) -> None:
    session = _session()
    session.load(make_image_bytes())
    session.detect()
    session.set_offset(0, Offset(40, 40))
    session.detect()
    assert len(session.offsets) == 0


def test_empty_detection_is_informational(make_image_bytes) -> None:
    session = _session(annotations=[])
    session.load(make_image_bytes())
    result = session.detect()
    assert result.no_text
    assert result.message == NO_TEXT_MESSAGE
    assert session.state.annotations == []


def test_backend_failure_is_wrapped(make_image_bytes) -> None:
    session = LensSession(backend=FailingBackend())
    session.load(make_image_bytes())
    with pytest.raises(DetectionError, match="quota exceeded"):
        session.detect()
    with pytest.raises(EditError, match="model refused"):
        session.edit("make it blue")


def test_actions_need_an_image() -> None:
    session = _session()
    with pytest.raises(ValueError):
        session.detect()
    with pytest.raises(ValueError):
        session.export()


def test_new_upload_discards_previous_state(make_image_bytes) -> None:
    session = _session()
    session.load(make_image_bytes())
    session.detect()
    session.set_offset(0, Offset(10, 0))
    session.edit("sepia")
    session.load(make_image_bytes(50, 50))
    assert session.state.annotations == []
    assert session.state.processed is None
    assert len(session.offsets) == 0


def test_reset_empties_state(make_image_bytes) -> None:
    session = _session()
    session.load(make_image_bytes())
    session.reset()
    assert not session.has_image
    assert session.state.width == 0


def test_set_translation_and_bounds(make_image_bytes) -> None:
    session = _session()
    session.load(make_image_bytes())
    session.detect()
    session.set_translation(0, "紧急出口")
    assert session.state.annotations[0].translation == "紧急出口"
    assert session.state.annotations[0].box_2d == (100, 100, 200, 300)
    with pytest.raises(IndexError):
        session.set_translation(5, "x")
    with pytest.raises(IndexError):
        session.set_offset(-1, Offset(1, 1))


def test_overlay_shares_session_data(make_image_bytes) -> None:
    session = _session()
    session.load(make_image_bytes(2000, 1000))
    overlay = session.overlay(max_width=1000)
    assert (overlay.displayed_width, overlay.displayed_height) == (1000, 500)

    session.detect()
    frame = overlay.render()
    assert [c.index for c in frame.labels] == [0]

    chip = frame.labels[0].rect
    overlay.pointer_down(chip.x + 2, chip.y + 2)
    overlay.pointer_move(chip.x + 12, chip.y + 2)
    overlay.pointer_up()
    assert session.offsets.get(0).x == pytest.approx(10)

    overlay.edit_text(0, "安全出口")
    assert session.state.annotations[0].translation == "安全出口"


def test_export_translate_mode_is_full_resolution(make_image_bytes) -> None:
    session = _session()
    session.load(make_image_bytes(800, 600))
    session.detect()
    result = Image.open(io.BytesIO(session.export(Mode.TRANSLATE)))
    assert result.size == (800, 600)
    assert result.format == "JPEG"


def test_export_studio_mode_prefers_processed(make_image_bytes) -> None:
    session = _session()
    original = make_image_bytes()
    session.load(original)
    assert session.export(Mode.STUDIO) == original
    session.state.processed = b"edited-bytes"
    assert session.export(Mode.STUDIO) == b"edited-bytes"


def test_edit_requires_prompt(make_image_bytes) -> None:
    session = _session()
    session.load(make_image_bytes())
    with pytest.raises(ValueError):
        session.edit("   ")
    assert session.edit("add a cat") == session.state.original
    assert session.state.processed == session.state.original


def test_save_uses_download_name(tmp_path, make_image_bytes) -> None:
    session = _session()
    session.load(make_image_bytes())
    path = session.save(tmp_path, Mode.TRANSLATE)
    assert path.parent == tmp_path
    assert path.name.startswith("lingualens-translated-")
    assert path.suffix == ".jpg"
    assert path.read_bytes()[:2] == b"\xff\xd8"


def test_download_name_format() -> None:
    now = datetime(2024, 5, 1, 10, 30, 15, 123000, tzinfo=timezone.utc)
    assert download_name(Mode.TRANSLATE, now) == "lingualens-translated-2024-05-01T10-30-15-123000+00-00.jpg"
    assert download_name(Mode.STUDIO, now).startswith("lingualens-studio-2024-05-01T10-30-15")


def test_overlay_from_before_new_upload_sees_empty_list(make_image_bytes) -> None:
    session = _session()
    session.load(make_image_bytes())
    session.detect()
    overlay = session.overlay(max_width=400)
    assert len(overlay.render().labels) == 1

    session.load(make_image_bytes(50, 50))
    assert overlay.annotations is session.state.annotations
    assert overlay.render().labels == []
    session.detect()
    assert [c.index for c in overlay.render().labels] == [0]

    session.reset()
    assert overlay.annotations is session.state.annotations
    assert overlay.annotations == []
