"""File export helpers."""

from __future__ import annotations

import logging
from pathlib import Path

from modules.services.edit_session import EditSession
from modules.utils.image_utils import data_url_to_image

logger = logging.getLogger(__name__)


class StorageService:
    """Save history entries as downloadable PNG files."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)

    @staticmethod
    def file_name(index: int) -> str:
        return f"edited-image-{index}.png"

    def save_image(self, data_url: str, index: int) -> Path:
        """Persist a data URL as ``edited-image-<index>.png`` and return the path."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        target = self.output_dir / self.file_name(index)
        image = data_url_to_image(data_url)
        if image.mode not in ("RGB", "RGBA", "L", "LA", "P"):
            image = image.convert("RGBA")
        image.save(target, format="PNG")
        logger.info("Exported history entry %d to %s", index, target)
        return target

    def export_current(self, session: EditSession) -> Path:
        """Save the entry currently shown by the session."""
        state = session.snapshot()
        return self.save_image(state.history[state.current_index], state.current_index)
