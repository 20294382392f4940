"""Environment variable lookup for provider credentials."""

from __future__ import annotations

import os
from typing import Dict, Optional

DEFAULT_GEMINI_API_HOST = "https://generativelanguage.googleapis.com"

_ENV_KEY_BY_PROVIDER: Dict[str, str] = {
    "gemini": "GEMINI_API_KEY",
    "google": "GOOGLE_API_KEY",
}

_ENV_HOST_BY_PROVIDER: Dict[str, str] = {
    "gemini": "GEMINI_API_HOST",
}


def get_env_api_key(provider: str) -> Optional[str]:
    env_key = _ENV_KEY_BY_PROVIDER.get(provider)
    if not env_key:
        return None
    return os.getenv(env_key)


def get_env_api_host(provider: str = "gemini") -> str:
    env_key = _ENV_HOST_BY_PROVIDER.get(provider)
    host = os.getenv(env_key) if env_key else None
    return host or DEFAULT_GEMINI_API_HOST
