"""Edit session state: linear history, cursor and request tracking."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Sequence, Tuple, Union

from modules.errors import ImageEditorError, NoImageProduced
from modules.optimization.prompt_builder import AspectPreference, build_context_prompt
from modules.utils.image_utils import decode_data_url

logger = logging.getLogger(__name__)

NO_IMAGE_MESSAGE = "The model did not return an image. Please try a different instruction."


class EditMode(str, Enum):
    """How a submitted instruction is applied."""

    DIRECT = "direct-edit"
    CONTEXT = "context-placement"


@dataclass(frozen=True, slots=True)
class UploadedImage:
    """The source file chosen by the user and its data URL."""

    source: Union[str, Path]
    data_url: str

    @property
    def name(self) -> str:
        return Path(str(self.source)).name


@dataclass(frozen=True, slots=True)
class PendingEdit:
    """Ticket for one in-flight generation, tied to the session generation."""

    generation: int
    base_index: int
    prompt: str
    count: int
    mime_type: str
    payload: str


@dataclass(frozen=True, slots=True)
class SessionState:
    """Immutable view of an edit session."""

    history: Tuple[str, ...]
    current_index: int
    is_pending: bool
    last_error: Optional[str]
    generation: int


class EditSession:
    """Single-owner editing state driving an image edit client.

    At most one request is pending at a time. Each successful request
    replaces the history tuple with ``history[:index + 1] + results`` and
    moves the cursor to the first new image. Responses are matched to the
    session generation they were issued under, so a response that arrives
    after ``reset`` is dropped.
    """

    def __init__(self, image: UploadedImage, client: Any = None, variant_count: int = 2) -> None:
        if variant_count < 1:
            raise ValueError("variant_count must be at least 1")
        self.client = client
        self.variant_count = variant_count
        self._lock = threading.Lock()
        self._generation = 0
        self._image = image
        self._history: Tuple[str, ...] = ()
        self._index = 0
        self._pending = False
        self._error: Optional[str] = None
        self.reset(image)

    # State accessors ----------------------------------------------------------
    @property
    def image(self) -> UploadedImage:
        return self._image

    @property
    def history(self) -> Tuple[str, ...]:
        return self._history

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current_image(self) -> str:
        return self._history[self._index]

    @property
    def original_image(self) -> str:
        return self._history[0]

    @property
    def is_pending(self) -> bool:
        return self._pending

    @property
    def last_error(self) -> Optional[str]:
        return self._error

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_original(self) -> bool:
        return self._index == 0

    @property
    def label(self) -> str:
        """Caption for the displayed entry."""
        if self.is_original:
            return "Original"
        return f"Edit {self._index} / {len(self._history) - 1}"

    def snapshot(self) -> SessionState:
        with self._lock:
            return SessionState(
                history=self._history,
                current_index=self._index,
                is_pending=self._pending,
                last_error=self._error,
                generation=self._generation,
            )

    # Lifecycle ----------------------------------------------------------------
    def reset(self, image: UploadedImage) -> None:
        """Start over from a new source image; in-flight results become stale."""
        with self._lock:
            self._generation += 1
            self._image = image
            self._history = (image.data_url,)
            self._index = 0
            self._pending = False
            self._error = None
        logger.info("Session reset to %s (generation %d)", image.name, self._generation)

    def discard(self) -> None:
        """Abandon the session; a request still in flight becomes stale."""
        with self._lock:
            self._generation += 1
            self._pending = False
        logger.info("Session for %s discarded (generation %d)", self._image.name, self._generation)

    def begin(
        self,
        instruction: str,
        mode: EditMode = EditMode.DIRECT,
        aspect: Union[str, AspectPreference, None] = AspectPreference.AUTO,
    ) -> Optional[PendingEdit]:
        """Move to the pending state and return a ticket, or None if rejected."""
        if not instruction or not instruction.strip():
            return None
        mode = EditMode(mode)

        if mode is EditMode.CONTEXT:
            prompt = build_context_prompt(instruction, aspect)
            count = self.variant_count
        else:
            prompt = instruction
            count = 1

        with self._lock:
            if self._pending:
                logger.info("Ignoring submission while a request is pending")
                return None
            parts = decode_data_url(self._history[self._index])
            self._pending = True
            self._error = None
            return PendingEdit(
                generation=self._generation,
                base_index=self._index,
                prompt=prompt,
                count=count,
                mime_type=parts.mime_type,
                payload=parts.payload,
            )

    def _is_current(self, ticket: PendingEdit) -> bool:
        if ticket.generation != self._generation:
            logger.info(
                "Discarding response for generation %d (current %d)",
                ticket.generation,
                self._generation,
            )
            return False
        return True

    def complete(self, ticket: PendingEdit, images: Sequence[str]) -> bool:
        """Apply generated images; return False when the ticket is stale."""
        with self._lock:
            if not self._is_current(ticket):
                return False
            self._pending = False
            if not images:
                self._error = NO_IMAGE_MESSAGE
                return True
            self._history = self._history[: ticket.base_index + 1] + tuple(images)
            self._index = ticket.base_index + 1
            self._error = None
        logger.info("Appended %d image(s); history length %d", len(images), len(self._history))
        return True

    def fail(self, ticket: PendingEdit, error: BaseException) -> bool:
        """Record a failed request; return False when the ticket is stale."""
        with self._lock:
            if not self._is_current(ticket):
                return False
            self._pending = False
            if isinstance(error, NoImageProduced):
                self._error = NO_IMAGE_MESSAGE
            else:
                self._error = str(error) or "An unknown error occurred."
        logger.warning("Edit request failed: %s", self._error)
        return True

    def submit(
        self,
        instruction: str,
        mode: EditMode = EditMode.DIRECT,
        aspect: Union[str, AspectPreference, None] = AspectPreference.AUTO,
    ) -> bool:
        """Run one edit synchronously through the client; return whether it was issued."""
        if self.client is None:
            raise RuntimeError("No image edit client configured for this session.")
        ticket = self.begin(instruction, mode, aspect)
        if ticket is None:
            return False
        try:
            images = self.client.generate_edits(
                ticket.payload, ticket.mime_type, ticket.prompt, ticket.count
            )
        except ImageEditorError as exc:
            self.fail(ticket, exc)
        except Exception as exc:
            self.fail(ticket, exc)
            raise
        else:
            self.complete(ticket, images or [])
        return True

    # Navigation ---------------------------------------------------------------
    def prev(self) -> int:
        """Step back one entry; no-op at the original or while pending."""
        with self._lock:
            if not self._pending:
                self._index = max(0, self._index - 1)
            return self._index

    def next(self) -> int:
        """Step forward one entry; no-op at the tip or while pending."""
        with self._lock:
            if not self._pending:
                self._index = min(len(self._history) - 1, self._index + 1)
            return self._index
