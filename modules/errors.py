"""Error types surfaced to the user by the editor."""

from __future__ import annotations


class ImageEditorError(RuntimeError):
    """Base class for recoverable, user-facing editor errors."""


class ReadError(ImageEditorError):
    """A local file could not be read or encoded."""


class InvalidFileType(ImageEditorError):
    """The selected file is not an image."""


class NoImageProduced(ImageEditorError):
    """The model answered but returned no usable image."""

    def __init__(self, message: str = "The model did not return any image.") -> None:
        super().__init__(message)


class GenerationFailed(ImageEditorError):
    """Transport or provider-side failure while generating an image."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
