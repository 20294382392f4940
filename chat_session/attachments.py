"""Turn local files into inline attachment parts."""

from __future__ import annotations

import base64
import mimetypes
from pathlib import Path
from typing import Optional

from chat_ai.types import InlineData, InlineDataPart

from .settings import AppSettings


class AttachmentError(ValueError):
    pass


def load_attachment(path: str | Path, settings: Optional[AppSettings] = None) -> InlineDataPart:
    settings = settings or AppSettings()
    file_path = Path(path)

    extension = file_path.suffix.lower()
    if extension not in settings.extension_list():
        raise AttachmentError(f"File type not allowed: {file_path.name}")
    if not file_path.is_file():
        raise AttachmentError(f"File not found: {file_path}")

    size = file_path.stat().st_size
    limit = settings.max_file_size_kb * 1024
    if size > limit:
        raise AttachmentError(
            f"{file_path.name} is {size / 1024:.1f} KB, larger than the {settings.max_file_size_kb} KB limit"
        )

    mime_type = mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"
    data = base64.b64encode(file_path.read_bytes()).decode("ascii")
    return InlineDataPart(inline_data=InlineData(mime_type=mime_type, data=data, name=file_path.name))
