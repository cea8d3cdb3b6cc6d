"""Prompt templates for context placement."""

from __future__ import annotations

from enum import Enum
from typing import Union


class AspectPreference(str, Enum):
    """Requested orientation of a context-placement result."""

    AUTO = "auto"
    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"


CONTEXT_TEMPLATE = (
    "Take the primary object from this image, which is isolated on a white background, "
    'and place it realistically into the following new scene or context: "{scene}". '
    "Ensure the lighting, shadows, and perspective match the new environment. "
    "Do not add any logos or watermarks."
)

ASPECT_DIRECTIVES = {
    AspectPreference.AUTO: "",
    AspectPreference.LANDSCAPE: "The final image must have a landscape orientation (for example a 16:9 ratio).",
    AspectPreference.PORTRAIT: "The final image must have a portrait orientation (for example a 9:16 ratio).",
}


def parse_aspect(value: Union[str, AspectPreference, None]) -> AspectPreference:
    """Coerce a UI value into an AspectPreference; empty means auto."""
    if value is None or value == "":
        return AspectPreference.AUTO
    try:
        return AspectPreference(value)
    except ValueError as exc:
        raise ValueError(f"Unknown aspect preference: {value!r}") from exc


def aspect_directive(aspect: Union[str, AspectPreference, None]) -> str:
    """Return the sentence appended for the given aspect preference."""
    return ASPECT_DIRECTIVES[parse_aspect(aspect)]


def build_context_prompt(scene: str, aspect: Union[str, AspectPreference, None] = None) -> str:
    """Wrap a scene description into the placement instruction."""
    prompt = CONTEXT_TEMPLATE.format(scene=scene.strip())
    directive = aspect_directive(aspect)
    if directive:
        prompt = f"{prompt} {directive}"
    return prompt
