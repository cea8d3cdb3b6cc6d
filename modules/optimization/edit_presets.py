"""One-click edit preset management."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EditPreset:
    """A named direct-edit instruction shown as a button."""

    name: str
    label: str
    prompt: str


BUILTIN_PRESETS = (
    EditPreset(
        name="object",
        label="Isolate object",
        prompt=(
            "Identify the main object in this image. Isolate it completely, removing any "
            "people, hands, or other secondary objects. The final image should feature only "
            "the main object, fully intact, on a pure white background."
        ),
    ),
    EditPreset(
        name="handbag",
        label="Handbag",
        prompt=(
            "Precisely isolate the handbag in this image. Remove any person, hands, or other "
            "objects holding or near the bag. The final image should show only the handbag, "
            "complete and intact, on a pure white background."
        ),
    ),
    EditPreset(
        name="pants",
        label="Pants",
        prompt=(
            "Precisely isolate the pants in this image. Remove the person wearing them and "
            "any other objects. The final image should show only the pants, laid flat as if "
            "for a product photo, on a pure white background."
        ),
    ),
    EditPreset(
        name="top",
        label="Shirt / top",
        prompt=(
            "Precisely isolate the shirt or top garment in this image. Remove the person "
            "wearing it and any other objects. The final image should show only the "
            "shirt/top, laid flat as if for a product photo, on a pure white background."
        ),
    ),
)


class EditPresetRegistry:
    """In-memory registry of edit presets."""

    def __init__(self) -> None:
        self._presets: Dict[str, EditPreset] = {}

    def load_from_file(self, path: Path) -> int:
        """Load presets from a JSON list and return how many were accepted.

        Entries without a name or with a blank prompt are skipped with a
        warning; a file that is not a JSON list raises ``ValueError``.
        """
        if not path.exists():
            return 0
        with path.open("r", encoding="utf-8") as fp:
            data = json.load(fp)
        if not isinstance(data, list):
            raise ValueError(f"{path} must contain a JSON list of presets")

        loaded = 0
        for position, entry in enumerate(data):
            try:
                name = str(entry["name"]).strip()
                preset = EditPreset(
                    name=name,
                    label=str(entry.get("label") or name).strip(),
                    prompt=str(entry.get("prompt") or ""),
                )
                self.add(preset)
            except (KeyError, TypeError, AttributeError, ValueError) as exc:
                logger.warning("Skipping preset #%d in %s: %s", position, path, exc)
                continue
            loaded += 1
        logger.info("Loaded %d edit preset(s) from %s", loaded, path)
        return loaded

    def add(self, preset: EditPreset) -> None:
        """Register a preset, replacing any preset with the same name."""
        if not preset.name:
            raise ValueError("preset name must not be empty")
        if not preset.prompt.strip():
            raise ValueError(f"preset '{preset.name}' has a blank prompt")
        self._presets[preset.name] = preset

    def list_presets(self) -> List[EditPreset]:
        """Return all registered presets."""
        return list(self._presets.values())

    def get(self, name: str) -> EditPreset:
        """Retrieve a preset by name."""
        try:
            return self._presets[name]
        except KeyError as exc:
            raise KeyError(f"Edit preset '{name}' not found") from exc


def default_registry() -> EditPresetRegistry:
    """Return a registry holding the built-in isolation presets."""
    registry = EditPresetRegistry()
    for preset in BUILTIN_PRESETS:
        registry.add(preset)
    return registry
