"""Remote image-editing service backed by the Gemini image model."""

from __future__ import annotations

import base64
import logging
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, List, Optional

from google import genai
from google.genai import types

from config.settings import DEFAULT_IMAGE_MODEL, AppConfig
from modules.errors import GenerationFailed, NoImageProduced
from modules.utils.image_utils import build_data_url

logger = logging.getLogger(__name__)

VARIANT_DIRECTIVE = (
    "Use exactly the same model (if any) and the same setting. All background "
    "details, lighting and environment must stay identical. Only slightly change "
    "the model's pose or the product's angle to create a different look."
)


@dataclass(slots=True)
class ImageEditRequest:
    """One remote generation call."""

    payload: str
    mime_type: str
    prompt: str


def build_variant_prompts(instruction: str, count: int) -> List[str]:
    """Return the instruction variants used for a request of ``count`` images.

    The list is clamped to the authored variants, never padded.
    """
    variants = [instruction, f"{instruction} {VARIANT_DIRECTIVE}"]
    return variants[:count]


def extract_image(response: Any) -> Optional[str]:
    """Return the first inline image of a generate_content response as a data URL."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    for part in getattr(content, "parts", None) or []:
        inline = getattr(part, "inline_data", None)
        if inline is None or not inline.data:
            continue
        data = inline.data
        if isinstance(data, str):
            data = base64.b64decode(data)
        return build_data_url(inline.mime_type or "image/png", data)
    return None


class ImageEditClient:
    """Facade around the Gemini image model for instruction-driven edits."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_IMAGE_MODEL,
        timeout: Optional[float] = None,
        max_workers: Optional[int] = None,
    ) -> None:
        if not api_key:
            raise ValueError("An API key is required for the image edit client.")
        http_options = None
        if timeout:
            http_options = types.HttpOptions(timeout=int(timeout * 1000))
        self._client = genai.Client(api_key=api_key, http_options=http_options)
        self.model = model
        self.max_workers = max_workers

    @classmethod
    def from_config(cls, config: AppConfig) -> "ImageEditClient":
        """Build a client from application settings."""
        if not config.gemini_api_key:
            raise RuntimeError("GEMINI_API_KEY is not configured; set it in the environment or .env.")
        return cls(
            api_key=config.gemini_api_key,
            model=config.image_model,
            timeout=config.request_timeout,
        )

    def generate_single(self, payload: str, mime_type: str, prompt: str) -> Optional[str]:
        """Issue one generation request; return a data URL or None when no image came back."""
        response = self._client.models.generate_content(
            model=self.model,
            contents=[
                types.Part.from_bytes(data=base64.b64decode(payload), mime_type=mime_type),
                prompt,
            ],
            config=types.GenerateContentConfig(response_modalities=["IMAGE"]),
        )
        return extract_image(response)

    def _run(self, request: ImageEditRequest) -> Optional[str]:
        try:
            return self.generate_single(request.payload, request.mime_type, request.prompt)
        except Exception as exc:  # noqa: BLE001
            raise GenerationFailed(f"Failed to generate image: {exc}") from exc

    def generate_edits(
        self,
        image_payload: str,
        mime_type: str,
        instruction: str,
        count: int = 1,
    ) -> List[str]:
        """Edit an image according to ``instruction`` and return the results as data URLs.

        With ``count > 1`` every instruction variant is sent concurrently.
        Variants that produce no image are dropped; any hard error aborts the
        whole call with GenerationFailed. NoImageProduced is raised when no
        request yields an image.
        """
        if count < 1:
            raise ValueError("count must be at least 1")
        if not instruction or not instruction.strip():
            raise ValueError("instruction must not be empty")

        logger.info("Requesting %d edit(s) from %s", count, self.model)
        logger.debug("Edit instruction: %s", instruction)

        if count == 1:
            result = self._run(ImageEditRequest(image_payload, mime_type, instruction))
            if result is None:
                raise NoImageProduced()
            return [result]

        edit_requests = [
            ImageEditRequest(image_payload, mime_type, prompt)
            for prompt in build_variant_prompts(instruction, count)
        ]
        results = self._fan_out(edit_requests)
        images = [image for image in results if image is not None]
        if not images:
            raise NoImageProduced()
        if len(images) < len(edit_requests):
            missing = len(edit_requests) - len(images)
            logger.warning("%d of %d variants returned no image", missing, len(edit_requests))
        return images

    def _fan_out(self, batch: List[ImageEditRequest]) -> List[Optional[str]]:
        """Run requests concurrently, failing fast on the first hard error."""
        executor = ThreadPoolExecutor(
            max_workers=self.max_workers or len(batch),
            thread_name_prefix="image-edit",
        )
        try:
            futures: List[Future] = [executor.submit(self._run, request) for request in batch]
            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            for future in futures:
                if future not in done:
                    continue
                error = future.exception()
                if error is not None:
                    raise error
            return [future.result() for future in futures]
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
