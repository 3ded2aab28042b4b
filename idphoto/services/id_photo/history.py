from collections import deque


class GenerationHistory:
    """Generated data URLs for one session, newest first, bounded."""

    def __init__(self, max_items: int = 20) -> None:
        self._items: deque[str] = deque(maxlen=max_items)

    def add(self, image_data_url: str) -> None:
        self._items.appendleft(image_data_url)

    def items(self) -> list[str]:
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)
