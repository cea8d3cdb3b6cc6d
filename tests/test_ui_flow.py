"""Gradio UI callback tests."""

from __future__ import annotations

import io
import threading
from typing import Optional

import gradio as gr
import pytest
from PIL import Image

from config.settings import AppConfig
from modules.errors import GenerationFailed, NoImageProduced
from modules.optimization.edit_presets import EditPreset, EditPresetRegistry
from modules.services.edit_session import NO_IMAGE_MESSAGE, EditSession
from modules.services.storage_service import StorageService
from modules.ui import callbacks
from modules.utils.image_utils import build_data_url


def png_bytes(color=(255, 0, 0)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color).save(buffer, format="PNG")
    return buffer.getvalue()


RED = build_data_url("image/png", png_bytes((255, 0, 0)))
GREEN = build_data_url("image/png", png_bytes((0, 255, 0)))
BLUE = build_data_url("image/png", png_bytes((0, 0, 255)))


class DummyImageEditClient:
    """Stub image edit client for capturing inputs."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str, int]] = []
        self.results: list = []

    def generate_edits(self, payload: str, mime_type: str, instruction: str, count: int = 1):
        self.calls.append((payload, mime_type, instruction, count))
        result = self.results.pop(0) if self.results else [GREEN] * count
        if isinstance(result, Exception):
            raise result
        return result


class BlockingImageEditClient(DummyImageEditClient):
    """Stub that holds each request until the test releases it."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def generate_edits(self, payload: str, mime_type: str, instruction: str, count: int = 1):
        self.entered.set()
        assert self.release.wait(timeout=5)
        return super().generate_edits(payload, mime_type, instruction, count)


def run_in_background(fn, *args):
    outcome: dict = {}

    def _target() -> None:
        outcome["result"] = fn(*args)

    thread = threading.Thread(target=_target)
    thread.start()
    return thread, outcome


def build_callbacks(
    tmp_path,
    *,
    client: Optional[DummyImageEditClient] = None,
    registry: Optional[EditPresetRegistry] = None,
    config: Optional[AppConfig] = None,
):
    config = config or AppConfig(output_dir=tmp_path / "outputs")
    return callbacks.build_callbacks(
        config,
        client=client or DummyImageEditClient(),
        preset_registry=registry,
        storage=StorageService(config.output_dir),
    )


@pytest.fixture()
def photo(tmp_path):
    path = tmp_path / "photo.png"
    path.write_bytes(png_bytes())
    return str(path)


def upload(cb_map, photo_path, session=None) -> EditSession:
    session, original, current, status = cb_map["on_upload"](photo_path, session)
    assert session is not None
    return session


def test_on_upload_creates_session(tmp_path, photo):
    cb = build_callbacks(tmp_path)["on_upload"]

    session, original, current, status = cb(photo, None)

    assert isinstance(session, EditSession)
    assert session.history == (RED,)
    assert original.size == (4, 4)
    assert current.size == (4, 4)
    assert status == "Original · photo.png"


def test_on_upload_rejects_non_image(tmp_path):
    text_file = tmp_path / "notes.txt"
    text_file.write_text("hello", encoding="utf-8")
    cb = build_callbacks(tmp_path)["on_upload"]

    session, original, current, status = cb(str(text_file), None)

    assert session is None
    assert original is None
    assert "valid image" in status


def test_on_upload_rejection_keeps_existing_session(tmp_path, photo):
    cb_map = build_callbacks(tmp_path)
    session = upload(cb_map, photo)
    cb_map["on_submit_edit"](session, "make it green", "")

    result, _, _, status = cb_map["on_upload"](str(tmp_path / "missing.png"), session)

    assert result is session
    assert session.history == (RED, GREEN)
    assert "Could not read" in status


def test_on_upload_replaces_image_and_resets_history(tmp_path, photo):
    cb_map = build_callbacks(tmp_path)
    session = upload(cb_map, photo)
    cb_map["on_submit_edit"](session, "make it green", "")
    second = tmp_path / "second.png"
    second.write_bytes(png_bytes((0, 0, 255)))

    result, _, _, status = cb_map["on_upload"](str(second), session)

    assert result is session
    assert session.history == (BLUE,)
    assert session.current_index == 0
    assert status == "Original · second.png"


def test_on_submit_edit_appends_and_clears_prompts(tmp_path, photo):
    client = DummyImageEditClient()
    cb_map = build_callbacks(tmp_path, client=client)
    session = upload(cb_map, photo)

    session, original, current, status, prompt, context_prompt = cb_map["on_submit_edit"](
        session, "make it green", "on a beach"
    )

    assert client.calls[0][2:] == ("make it green", 1)
    assert client.calls[0][1] == "image/png"
    assert session.history == (RED, GREEN)
    assert current.getpixel((0, 0)) == (0, 255, 0)
    assert original.getpixel((0, 0)) == (255, 0, 0)
    assert status == "Edit 1 / 1 · photo.png"
    assert (prompt, context_prompt) == ("", "")


def test_on_submit_context_requests_two_variants(tmp_path, photo):
    client = DummyImageEditClient()
    client.results = [[GREEN, BLUE]]
    cb_map = build_callbacks(tmp_path, client=client)
    session = upload(cb_map, photo)

    session, _, current, status, _, _ = cb_map["on_submit_context"](
        session, "on a beach", "portrait", ""
    )

    _, _, instruction, count = client.calls[0]
    assert count == 2
    assert '"on a beach"' in instruction
    assert "9:16" in instruction
    assert session.history == (RED, GREEN, BLUE)
    assert session.current_index == 1
    assert status == "Edit 1 / 2 · photo.png"


def test_on_submit_with_empty_prompt_does_nothing(tmp_path, photo):
    client = DummyImageEditClient()
    cb_map = build_callbacks(tmp_path, client=client)
    session = upload(cb_map, photo)

    session, _, _, status, prompt, context_prompt = cb_map["on_submit_context"](session, "", "auto", "keep")

    assert client.calls == []
    assert session.history == (RED,)
    assert (prompt, context_prompt) == ("keep", "")


def test_on_submit_failure_keeps_prompt_and_shows_error(tmp_path, photo):
    client = DummyImageEditClient()
    client.results = [GenerationFailed("Failed to generate image: quota exceeded")]
    cb_map = build_callbacks(tmp_path, client=client)
    session = upload(cb_map, photo)

    session, _, _, status, prompt, _ = cb_map["on_submit_edit"](session, "make it green", "")

    assert session.history == (RED,)
    assert "quota exceeded" in status
    assert prompt == "make it green"


def test_on_submit_no_image_shows_fixed_message(tmp_path, photo):
    client = DummyImageEditClient()
    client.results = [NoImageProduced()]
    cb_map = build_callbacks(tmp_path, client=client)
    session = upload(cb_map, photo)

    _, _, _, status, _, _ = cb_map["on_submit_edit"](session, "make it green", "")

    assert NO_IMAGE_MESSAGE in status


def test_on_submit_without_session_prompts_upload(tmp_path):
    cb = build_callbacks(tmp_path)["on_submit_edit"]

    session, original, current, status, prompt, _ = cb(None, "make it green", "")

    assert session is None
    assert status == callbacks.UPLOAD_HINT
    assert prompt == "make it green"


def test_on_preset_uses_registry_prompt(tmp_path, photo):
    client = DummyImageEditClient()
    registry = EditPresetRegistry()
    registry.add(EditPreset(name="shoes", label="Shoes", prompt="Isolate the shoes."))
    cb_map = build_callbacks(tmp_path, client=client, registry=registry)
    session = upload(cb_map, photo)

    cb_map["make_preset_handler"]("shoes")(session, "", "")

    assert client.calls[0][2:] == ("Isolate the shoes.", 1)
    assert len(session.history) == 2


def test_navigation_callbacks_move_cursor(tmp_path, photo):
    cb_map = build_callbacks(tmp_path)
    session = upload(cb_map, photo)
    cb_map["on_submit_edit"](session, "make it green", "")

    session, _, current, status = cb_map["on_prev"](session)
    assert status == "Original · photo.png"
    assert current.getpixel((0, 0)) == (255, 0, 0)

    session, _, _, status = cb_map["on_prev"](session)
    assert session.current_index == 0

    session, _, _, status = cb_map["on_next"](session)
    session, _, _, status = cb_map["on_next"](session)
    assert status == "Edit 1 / 1 · photo.png"


def test_on_download_exports_current_entry(tmp_path, photo):
    cb_map = build_callbacks(tmp_path)
    session = upload(cb_map, photo)
    cb_map["on_submit_edit"](session, "make it green", "")

    path, status = cb_map["on_download"](session)

    assert path is not None
    assert path.endswith("edited-image-1.png")
    with Image.open(path) as image:
        assert image.getpixel((0, 0))[:3] == (0, 255, 0)
    assert status == "Edit 1 / 1 · photo.png"


def test_on_download_without_session(tmp_path):
    path, status = build_callbacks(tmp_path)["on_download"](None)

    assert path is None
    assert status == callbacks.UPLOAD_HINT


def test_on_reset_clears_everything(tmp_path, photo):
    cb_map = build_callbacks(tmp_path)
    session = upload(cb_map, photo)
    generation = session.generation

    result = cb_map["on_reset"](session)

    assert result == (None, None, None, callbacks.UPLOAD_HINT, "", "")
    assert session.generation == generation + 1
    assert session.is_pending is False


def write_png(tmp_path, name: str, color) -> str:
    path = tmp_path / name
    path.write_bytes(png_bytes(color))
    return str(path)


def test_late_response_after_start_over_leaves_new_session_alone(tmp_path, photo):
    client = BlockingImageEditClient()
    cb_map = build_callbacks(tmp_path, client=client)
    session = upload(cb_map, photo)
    thread, outcome = run_in_background(cb_map["on_submit_edit"], session, "make it green", "")
    assert client.entered.wait(timeout=5)

    cb_map["on_reset"](session)
    fresh = upload(cb_map, write_png(tmp_path, "second.png", (0, 0, 255)))
    client.release.set()
    thread.join(timeout=5)

    assert outcome["result"] == tuple(gr.update() for _ in range(6))
    assert fresh is not session
    assert fresh.history == (BLUE,)
    assert fresh.is_pending is False
    assert session.history == (RED,)


def test_late_response_after_new_upload_is_not_applied(tmp_path, photo):
    client = BlockingImageEditClient()
    cb_map = build_callbacks(tmp_path, client=client)
    session = upload(cb_map, photo)
    thread, outcome = run_in_background(cb_map["on_submit_edit"], session, "make it green", "keep")
    assert client.entered.wait(timeout=5)

    upload(cb_map, write_png(tmp_path, "second.png", (0, 0, 255)), session)
    client.release.set()
    thread.join(timeout=5)

    assert outcome["result"] == tuple(gr.update() for _ in range(6))
    assert session.history == (BLUE,)
    assert session.current_index == 0
    assert session.last_error is None


def test_submit_without_api_key_reports_error_in_status(tmp_path, photo):
    cb_map = callbacks.build_callbacks(AppConfig(output_dir=tmp_path / "outputs"))
    session = upload(cb_map, photo)

    session, _, current, status, prompt, _ = cb_map["on_submit_edit"](session, "make it green", "")

    assert "GEMINI_API_KEY" in status
    assert status.startswith("Original · photo.png")
    assert current.getpixel((0, 0)) == (255, 0, 0)
    assert session.history == (RED,)
    assert prompt == "make it green"
