from __future__ import annotations

import base64
import json
from types import SimpleNamespace
from typing import List

import pytest

from lingualens.backends import DummyBackend, OpenAIBackend
from lingualens.models import Annotation


class FakeCompletions:
    def __init__(self, replies: List[dict]) -> None:
        self.replies = list(replies)
        self.calls: List[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        content = json.dumps(self.replies.pop(0))
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeImages:
    def __init__(self, payload: bytes) -> None:
        self.payload = payload
        self.calls: List[dict] = []

    def edit(self, **kwargs):
        self.calls.append(kwargs)
        return SimpleNamespace(data=[SimpleNamespace(b64_json=base64.b64encode(self.payload).decode("ascii"))])


def _openai_backend(replies: List[dict], image_payload: bytes = b"") -> OpenAIBackend:
    backend = OpenAIBackend(api_key="test-key")
    completions = FakeCompletions(replies)
    backend.client = SimpleNamespace(
        chat=SimpleNamespace(completions=completions),
        images=FakeImages(image_payload),
    )
    return backend


def test_dummy_translation_prefixes_language() -> None:
    assert DummyBackend().translate_texts(["Hello", "Exit"], "de") == ["[de] Hello", "[de] Exit"]


def test_dummy_detection_returns_fresh_copies() -> None:
    backend = DummyBackend(annotations=[{"original": "Exit", "translation": "出口", "box_2d": [1, 2, 3, 4]}])
    first = backend.detect(b"", "image/png")
    first[0].translation = "changed"
    assert backend.detect(b"", "image/png")[0].translation == "出口"


def test_annotation_from_dict_validates() -> None:
    ann = Annotation.from_dict({"original": "A", "translation": "甲", "box_2d": ["10", 20.4, 30, 40]})
    assert ann.box_2d == (10, 20, 30, 40)
    with pytest.raises(ValueError):
        Annotation.from_dict({"original": "A", "translation": "甲"})
    with pytest.raises(ValueError):
        Annotation.from_dict({"original": "A", "translation": "甲", "box_2d": [1, 2, 3]})
    with pytest.raises(ValueError):
        Annotation.from_dict({"original": "A", "translation": "甲", "box_2d": [1, 2, "x", 4]})


def test_openai_detection_parses_and_drops_malformed() -> None:
    backend = _openai_backend(
        [
            {
                "annotations": [
                    {"original": "Exit", "translation": "出口", "box_2d": [100, 100, 200, 300]},
                    {"original": "Broken", "box_2d": [1, 2, 3, 4]},
                ]
            }
        ]
    )
    annotations = backend.detect(b"\x89PNG", "image/png", target_lang="zh-CN")
    assert annotations == [Annotation(original="Exit", translation="出口", box_2d=(100, 100, 200, 300))]

    call = backend.client.chat.completions.calls[0]
    assert call["response_format"] == {"type": "json_object"}
    image_part = call["messages"][1]["content"][1]
    assert image_part["image_url"]["url"].startswith("data:image/png;base64,")


def test_openai_detection_empty_is_valid() -> None:
    backend = _openai_backend([{"annotations": []}])
    assert backend.detect(b"img", "image/jpeg") == []


def test_openai_detection_requires_annotation_list() -> None:
    backend = _openai_backend([{"text": "nothing"}])
    with pytest.raises(RuntimeError):
        backend.detect(b"img", "image/jpeg")


def test_openai_translation_falls_back_for_missing_ids() -> None:
    backend = _openai_backend([{"translations": [{"id": "0", "text": "Bonjour"}]}])
    assert backend.translate_texts(["Hello", "World"], "fr") == ["Bonjour", "World"]


def test_openai_translation_batches_by_size() -> None:
    backend = _openai_backend(
        [
            {"translations": [{"id": "0", "text": "A'"}]},
            {"translations": [{"id": "1", "text": "B'"}]},
        ]
    )
    backend.max_batch_chars = 5
    assert backend.translate_texts(["aaaa", "bbbb"], "fr") == ["A'", "B'"]
    assert len(backend.client.chat.completions.calls) == 2


def test_openai_edit_decodes_image() -> None:
    backend = _openai_backend([], image_payload=b"edited")
    assert backend.edit(b"source", "add a hat", "image/png") == b"edited"
    call = backend.client.images.calls[0]
    assert call["prompt"] == "add a hat"
    assert call["image"] == ("image.png", b"source", "image/png")
