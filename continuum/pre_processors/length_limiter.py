from __future__ import annotations


class LengthLimiter:
    """Keep only the tail of the document; the end is what gets continued."""

    def __init__(self, max_chars: int):
        self.max_chars = max_chars

    def process(self, text: str) -> str:
        if self.max_chars <= 0 or len(text) <= self.max_chars:
            return text
        return text[-self.max_chars:]
