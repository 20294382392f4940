"""Persistent application settings."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from chat_ai.utils.serialization import to_snake_dict

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_EXTENSIONS = ".jpg,.jpeg,.png,.gif,.webp,.pdf,.txt,.md,.json,.js,.ts,.html,.css,.csv"


class AppSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    enable_auto_collapse: bool = True
    collapse_threshold: int = Field(default=5, ge=0)
    max_file_size_kb: int = Field(default=17, gt=0)
    allowed_extensions: str = DEFAULT_ALLOWED_EXTENSIONS

    def extension_list(self) -> List[str]:
        extensions = []
        for item in self.allowed_extensions.split(","):
            item = item.strip().lower()
            if not item:
                continue
            extensions.append(item if item.startswith(".") else f".{item}")
        return extensions


def load_settings(path: str | Path) -> AppSettings:
    """Stored values layered over the defaults; unreadable files fall back to defaults."""
    settings_path = Path(path)
    if not settings_path.exists():
        return AppSettings()
    try:
        stored = json.loads(settings_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", settings_path, exc)
        return AppSettings()
    if not isinstance(stored, dict):
        logger.warning("Ignoring settings file %s: expected an object", settings_path)
        return AppSettings()

    merged = AppSettings().model_dump()
    merged.update(to_snake_dict(stored))
    try:
        return AppSettings.model_validate(merged)
    except ValidationError as exc:
        logger.warning("Ignoring invalid settings in %s: %s", settings_path, exc)
        return AppSettings()


def save_settings(settings: AppSettings, path: str | Path) -> None:
    settings_path = Path(path)
    settings_path.parent.mkdir(parents=True, exist_ok=True)
    settings_path.write_text(json.dumps(settings.model_dump(), indent=2), encoding="utf-8")
