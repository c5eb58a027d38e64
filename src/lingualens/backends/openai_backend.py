from __future__ import annotations

import base64
import json
import logging
from typing import Dict, List, Optional, Sequence

from openai import OpenAI

from lingualens.backends.base import TranslationBackend, VisionBackend
from lingualens.models import Annotation

DETECT_PROMPT = (
    "Find every piece of {source} text in this image and translate it to {target}. "
    'Return JSON: {{"annotations": [{{"original": "...", "translation": "...", '
    '"box_2d": [ymin, xmin, ymax, xmax]}} ...]}} '
    "box_2d is the bounding box of the text, each coordinate an integer from 0 to 1000 "
    "relative to the image height (y) and width (x). "
    "Group words that belong to one line or phrase into a single item. "
    "If the text is only numbers or symbols, repeat it unchanged as the translation. "
    'If there is no text, return {{"annotations": []}}. '
    "Only respond with valid JSON and nothing else."
)


class OpenAIBackend(TranslationBackend, VisionBackend):
    """
    OpenAI backend: vision chat completions for detection and translation,
    the images edit endpoint for studio edits.

    Expects an API key via config or OPENAI_API_KEY env var.
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        image_model: str = "gpt-image-1",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.0,
        source_lang: Optional[str] = "English",
        system_prompt: Optional[str] = None,
        max_batch_chars: int = 4000,
    ) -> None:
        if api_key:
            self.client = OpenAI(api_key=api_key, base_url=base_url)
        else:
            self.client = OpenAI(base_url=base_url)
        self.model = model
        self.image_model = image_model
        self.temperature = temperature
        self.source_lang = source_lang
        self.max_batch_chars = max_batch_chars
        self.system_prompt = system_prompt or "You are a translation engine. Return only translations, preserving placeholders and numbering. Do not add explanations."
        self.logger = logging.getLogger(__name__)

    def detect(
        self,
        image_bytes: bytes,
        mime_type: str,
        target_lang: str = "zh-CN",
    ) -> List[Annotation]:
        data_uri = f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('ascii')}"
        prompt = DETECT_PROMPT.format(source=self.source_lang or "", target=target_lang)
        data = self._complete_json(
            [
                {"role": "system", "content": self.system_prompt},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": data_uri}},
                    ],
                },
            ]
        )
        items = data.get("annotations")
        if not isinstance(items, list):
            raise RuntimeError("OpenAI response missing 'annotations' list")

        annotations: List[Annotation] = []
        for item in items:
            try:
                annotations.append(Annotation.from_dict(item))
            except ValueError as exc:
                self.logger.warning("Dropping malformed annotation %r: %s", item, exc)
        self.logger.info("Detected %d text regions", len(annotations))
        return annotations

    def edit(self, image_bytes: bytes, prompt: str, mime_type: str) -> bytes:
        extension = mime_type.split("/")[-1] or "png"
        response = self.client.images.edit(
            model=self.image_model,
            image=(f"image.{extension}", image_bytes, mime_type),
            prompt=prompt,
        )
        if not response.data or not response.data[0].b64_json:
            raise RuntimeError("OpenAI response did not include an image")
        return base64.b64decode(response.data[0].b64_json)

    def translate_texts(
        self,
        texts: Sequence[str],
        target_lang: str,
        source_lang: Optional[str] = None,
    ) -> List[str]:
        translated: List[str] = []
        for batch in self._batch_texts(list(texts), self.max_batch_chars):
            mapping = self._translate_batch(batch, source_lang or self.source_lang, target_lang)
            for item_id, text in batch:
                result = mapping.get(item_id)
                if result is None:
                    self.logger.warning("Missing translation for id %s; falling back to source text", item_id)
                    result = text
                translated.append(result)
        return translated

    def _translate_batch(
        self,
        batch: List[tuple],
        source_lang: Optional[str],
        target_lang: str,
    ) -> Dict[str, str]:
        items = [{"id": item_id, "text": text} for item_id, text in batch]
        user_content = (
            f"Translate each item from {source_lang or 'auto-detect'} to {target_lang}. "
            'Return JSON: {"translations": [{"id": "...", "text": "<translated>"} ...]} '
            "Do not drop or reorder items. Preserve placeholders and numbering. "
            "Only respond with valid JSON and nothing else.\n"
            f"Items: {json.dumps(items, ensure_ascii=False)}"
        )
        data = self._complete_json(
            [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": user_content},
            ]
        )
        translations_list = data.get("translations")
        if not isinstance(translations_list, list):
            raise RuntimeError("OpenAI response missing 'translations' list")

        mapping: Dict[str, str] = {}
        for item in translations_list:
            if not isinstance(item, dict):
                continue
            item_id = item.get("id")
            text = item.get("text")
            if item_id is None or text is None:
                continue
            mapping[str(item_id)] = str(text)
        return mapping

    def _complete_json(self, messages: List[dict]) -> dict:
        response = self.client.chat.completions.create(
            model=self.model,
            temperature=self.temperature,
            response_format={"type": "json_object"},
            messages=messages,
        )
        content = response.choices[0].message.content
        if not content:
            raise RuntimeError("OpenAI response was empty")
        data = json.loads(content)
        if not isinstance(data, dict):
            raise RuntimeError("OpenAI response was not a JSON object")
        return data

    def _batch_texts(self, texts: List[str], max_batch_chars: int) -> List[List[tuple]]:
        batches: List[List[tuple]] = []
        current: List[tuple] = []
        current_size = 0
        for idx, text in enumerate(texts):
            size = len(text)
            if current and current_size + size > max_batch_chars:
                batches.append(current)
                current = [(str(idx), text)]
                current_size = size
            else:
                current.append((str(idx), text))
                current_size += size
        if current:
            batches.append(current)
        return batches
