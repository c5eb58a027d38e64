from __future__ import annotations

from typing import Dict, Iterator, Mapping, Tuple

from lingualens.models import Offset

ZERO_OFFSET = Offset(0.0, 0.0)


class OffsetStore:
    """
    User drag deltas keyed by annotation index.

    Values are normalized (0-1000 scale) so one stored offset places a label
    identically in the preview and in the full resolution export. Indices only
    mean something for the annotation list they were recorded against, so the
    store must be cleared whenever that list is replaced.
    """

    def __init__(self) -> None:
        self._offsets: Dict[int, Offset] = {}

    def get(self, index: int) -> Offset:
        return self._offsets.get(index, ZERO_OFFSET)

    def set(self, index: int, offset: Offset) -> None:
        self._offsets[index] = offset

    def clear(self) -> None:
        self._offsets.clear()

    def items(self) -> Iterator[Tuple[int, Offset]]:
        return iter(sorted(self._offsets.items()))

    def __len__(self) -> int:
        return len(self._offsets)

    def __contains__(self, index: object) -> bool:
        return index in self._offsets

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {str(i): {"x": o.x, "y": o.y} for i, o in self.items()}

    @classmethod
    def from_dict(cls, data: Mapping) -> "OffsetStore":
        """
        Load offsets saved by ``to_dict`` (JSON object keyed by index).
        """
        store = cls()
        for key, value in data.items():
            try:
                index = int(key)
                offset = Offset(float(value.get("x", 0.0)), float(value.get("y", 0.0)))
            except (AttributeError, TypeError, ValueError) as exc:
                raise ValueError(f"Invalid offset entry {key!r}: {value!r}") from exc
            store.set(index, offset)
        return store
