"""Exceptions raised by the core pipeline."""

from __future__ import annotations


class MessageProcessingError(RuntimeError):
    """A message failed after parsing; the broker retry policy decides what's next."""

    def __init__(self, topic: str, message: str) -> None:
        super().__init__(message)
        self.topic = topic
