"""Configuration helpers for the AI Image Editor project."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"


@dataclass(slots=True)
class AppConfig:
    """Centralized application configuration."""

    gemini_api_key: Optional[str] = None
    image_model: str = DEFAULT_IMAGE_MODEL
    request_timeout: Optional[float] = None
    variant_count: int = 2
    assets_dir: Path = Path("assets")
    output_dir: Path = Path("outputs")
    log_dir: Path = Path("logs")
    metadata: dict[str, Any] = field(default_factory=dict)


def _load_env_file(path: Path) -> None:
    """Populate environment variables from a simple KEY=VALUE .env file."""
    if not path.exists():
        return

    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ[key.strip()] = value.strip().strip('"').strip("'")


def _env_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if value > 0 else None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= 1 else default


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Return an AppConfig instance with environment-aware settings."""
    env_path = Path(config_path) if config_path else Path(".env")
    _load_env_file(env_path)

    api_key = (
        os.getenv("GEMINI_API_KEY")
        or os.getenv("GOOGLE_API_KEY")
        or os.getenv("API_KEY")
    )
    output_dir = Path(os.getenv("OUTPUT_DIR", "outputs")).expanduser()
    assets_dir = Path(os.getenv("ASSETS_DIR", "assets")).expanduser()

    metadata: dict[str, Any] = {}
    presets_path = os.getenv("EDIT_PRESETS_PATH")
    if presets_path:
        metadata["presets_path"] = presets_path

    return AppConfig(
        gemini_api_key=api_key or None,
        image_model=os.getenv("IMAGE_EDIT_MODEL") or DEFAULT_IMAGE_MODEL,
        request_timeout=_env_float("IMAGE_EDIT_TIMEOUT"),
        variant_count=_env_int("IMAGE_EDIT_VARIANTS", 2),
        assets_dir=assets_dir,
        output_dir=output_dir,
        metadata=metadata,
    )
