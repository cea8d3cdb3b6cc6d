"""Callback implementations for the Gradio interface."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import gradio as gr
from PIL import Image, UnidentifiedImageError

from config.settings import AppConfig
from modules.errors import ImageEditorError
from modules.optimization.edit_presets import EditPresetRegistry, default_registry
from modules.optimization.prompt_builder import parse_aspect
from modules.pipelines.image_edit import ImageEditClient
from modules.services.edit_session import EditMode, EditSession, UploadedImage
from modules.services.storage_service import StorageService
from modules.utils.image_utils import data_url_to_image, encode_file, ensure_image_file

logger = logging.getLogger(__name__)

UPLOAD_HINT = "Upload an image to start editing."

Views = tuple[Optional[Image.Image], Optional[Image.Image], str]


def build_callbacks(
    config: AppConfig,
    client: Any = None,
    preset_registry: Optional[EditPresetRegistry] = None,
    storage: Optional[StorageService] = None,
) -> dict[str, Any]:
    """Return a dictionary of Gradio callback functions.

    Every callback receives the current ``EditSession`` (or None before the
    first upload) and returns the session first, followed by the views.
    Without an explicit ``client`` one is built from ``config`` on the first
    submission, so a missing API key surfaces in the status text.
    """

    registry = preset_registry or default_registry()
    if not registry.list_presets():
        registry = default_registry()
    store = storage or StorageService(config.output_dir)
    edit_client = client

    def _resolve_client() -> Any:
        nonlocal edit_client
        if edit_client is None:
            edit_client = ImageEditClient.from_config(config)
        return edit_client

    def _status(session: EditSession) -> str:
        return f"{session.label} · {session.image.name}"

    def _views(session: Optional[EditSession], message: Optional[str] = None) -> Views:
        if session is None:
            return None, None, message or UPLOAD_HINT
        state = session.snapshot()
        original = data_url_to_image(state.history[0])
        current = data_url_to_image(state.history[state.current_index])
        status = _status(session)
        error = message or state.last_error
        if error:
            status += f"\n\n**Error:** {error}"
        return original, current, status

    def _unchanged(count: int) -> tuple[Any, ...]:
        return tuple(gr.update() for _ in range(count))

    def _submit(
        session: Optional[EditSession],
        instruction: str,
        mode: EditMode,
        aspect: Any,
        prompt: str,
        context_prompt: str,
    ) -> tuple[Any, ...]:
        if session is None:
            return (session, *_views(None), prompt, context_prompt)
        if session.client is None:
            try:
                session.client = _resolve_client()
            except RuntimeError as exc:
                logger.error("Image edit client unavailable: %s", exc)
                return (session, *_views(session, str(exc)), prompt, context_prompt)
        generation = session.generation
        issued = session.submit(instruction or "", mode, parse_aspect(aspect))
        if session.generation != generation:
            # Reset or re-uploaded while the request ran; leave the newer state alone.
            logger.info("Dropping outputs of a superseded edit request")
            return _unchanged(6)
        if issued and session.last_error is None:
            prompt, context_prompt = "", ""
        return (session, *_views(session), prompt, context_prompt)

    def on_upload(file_path: Optional[str], session: Optional[EditSession]) -> tuple[Any, ...]:
        if not file_path:
            return (session, *_views(session))
        try:
            mime_type = ensure_image_file(str(file_path))
            data_url = encode_file(file_path, mime_type)
        except ImageEditorError as exc:
            logger.warning("Rejected upload %s: %s", file_path, exc)
            if session is None:
                return (session, None, None, f"**Error:** {exc}")
            return (session, *_views(session, str(exc)))

        uploaded = UploadedImage(source=file_path, data_url=data_url)
        if session is None:
            session = EditSession(uploaded, client=edit_client, variant_count=config.variant_count)
        else:
            session.reset(uploaded)
        return (session, *_views(session))

    def on_submit_edit(
        session: Optional[EditSession], prompt: str, context_prompt: str
    ) -> tuple[Any, ...]:
        return _submit(session, prompt, EditMode.DIRECT, None, prompt, context_prompt)

    def on_submit_context(
        session: Optional[EditSession], context_prompt: str, aspect: str, prompt: str
    ) -> tuple[Any, ...]:
        return _submit(session, context_prompt, EditMode.CONTEXT, aspect, prompt, context_prompt)

    def on_preset(
        session: Optional[EditSession], preset_name: str, prompt: str, context_prompt: str
    ) -> tuple[Any, ...]:
        preset = registry.get(preset_name)
        return _submit(session, preset.prompt, EditMode.DIRECT, None, prompt, context_prompt)

    def make_preset_handler(preset_name: str) -> Callable[..., tuple[Any, ...]]:
        def _handler(session: Optional[EditSession], prompt: str, context_prompt: str) -> tuple[Any, ...]:
            return on_preset(session, preset_name, prompt, context_prompt)

        return _handler

    def on_prev(session: Optional[EditSession]) -> tuple[Any, ...]:
        if session is not None:
            session.prev()
        return (session, *_views(session))

    def on_next(session: Optional[EditSession]) -> tuple[Any, ...]:
        if session is not None:
            session.next()
        return (session, *_views(session))

    def on_download(session: Optional[EditSession]) -> tuple[Optional[str], str]:
        if session is None:
            return None, UPLOAD_HINT
        try:
            path = store.export_current(session)
        except (OSError, UnidentifiedImageError, ImageEditorError) as exc:
            logger.error("Export failed: %s", exc)
            return None, f"{_status(session)}\n\n**Error:** Download failed: {exc}"
        return str(path), _status(session)

    def on_reset(session: Optional[EditSession]) -> tuple[Any, ...]:
        if session is not None:
            session.discard()
        return None, None, None, UPLOAD_HINT, "", ""

    return {
        "on_upload": on_upload,
        "on_submit_edit": on_submit_edit,
        "on_submit_context": on_submit_context,
        "on_preset": on_preset,
        "make_preset_handler": make_preset_handler,
        "on_prev": on_prev,
        "on_next": on_next,
        "on_download": on_download,
        "on_reset": on_reset,
    }
