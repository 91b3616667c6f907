from __future__ import annotations

from typing import Optional


class MetadataEditorError(Exception):
    """Base class for errors raised by the metadata editor."""


class YamlParseError(MetadataEditorError):
    """Raised when a YAML document cannot be parsed.

    ``line`` and ``column`` are 1-based and ``None`` when the parser did not
    report a position.
    """

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        self.message = message
        self.line = line
        self.column = column
        location = f" (line {line}, column {column})" if line is not None else ""
        super().__init__(f"{message}{location}")


class ChannelAssignmentError(MetadataEditorError):
    """Raised when a logical channel is not among a selector's options."""

    def __init__(self, channel: int, value, message: str):
        self.channel = channel
        self.value = value
        self.message = message
        super().__init__(f"channel {channel}: {message}")


class ChannelMapCsvError(MetadataEditorError):
    """Raised for malformed channel-map CSV input."""


class EditFailed(MetadataEditorError):
    """Raised by the edit session after an edit was rolled back."""
