"""Gemini streamGenerateContent provider."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from ..auth import get_env_api_host, get_env_api_key
from ..streaming import FragmentStream
from ..types import ChatConfig, Part, StreamOptions, part_from_wire

logger = logging.getLogger(__name__)


@dataclass
class GeminiOptions(StreamOptions):
    client: Optional[httpx.AsyncClient] = None


async def _maybe_abort(signal: Optional[asyncio.Event]) -> None:
    if signal and signal.is_set():
        raise RuntimeError("Request was aborted")


def stream_gemini(
    contents: List[Dict[str, Any]],
    config: ChatConfig,
    options: Optional[GeminiOptions] = None,
) -> FragmentStream:
    stream = FragmentStream()
    options = options or GeminiOptions()

    async def run() -> None:
        try:
            api_key = options.api_key or get_env_api_key("gemini") or get_env_api_key("google")
            if not api_key:
                raise RuntimeError("No API key for provider: gemini. Set GEMINI_API_KEY or pass api_key.")

            url = _build_url(options.base_url or get_env_api_host("gemini"), config.model)
            params = _build_payload(contents, config)
            headers = _build_headers(api_key, options.headers)

            if options.client is not None:
                await _consume_response(options.client, url, params, headers, stream, options.signal)
            else:
                async with httpx.AsyncClient(timeout=None) as client:
                    await _consume_response(client, url, params, headers, stream, options.signal)

            await _maybe_abort(options.signal)
            stream.push({"type": "done"})
            stream.end()
        except Exception as error:
            aborted = bool(options.signal and options.signal.is_set())
            if not aborted:
                logger.warning("Gemini stream failed: %s", error)
            stream.push(
                {
                    "type": "error",
                    "reason": "aborted" if aborted else "error",
                    "message": str(error),
                }
            )
            stream.end()

    asyncio.create_task(run())
    return stream


async def _consume_response(
    client: httpx.AsyncClient,
    url: str,
    params: Dict[str, Any],
    headers: Dict[str, str],
    stream: FragmentStream,
    signal: Optional[asyncio.Event],
) -> None:
    usage: Optional[Dict[str, Any]] = None
    async with client.stream("POST", url, json=params, headers=headers) as response:
        if response.status_code >= 400:
            raise RuntimeError(await _read_error(response))

        async for line in response.aiter_lines():
            await _maybe_abort(signal)
            if not line or not line.startswith("data:"):
                continue
            data = line[len("data:") :].strip()
            if not data or data == "[DONE]":
                continue
            try:
                chunk = json.loads(data)
            except json.JSONDecodeError:
                logger.warning("Skipping unparseable stream chunk: %s", data[:200])
                continue

            for part in _parse_parts(chunk):
                stream.push({"type": "fragment", "part": part})
            if chunk.get("usageMetadata"):
                usage = chunk["usageMetadata"]

    if usage is not None:
        stream.push(
            {
                "type": "usage",
                "input_tokens": int(usage.get("promptTokenCount") or 0),
                "output_tokens": int(usage.get("candidatesTokenCount") or 0),
            }
        )


def _parse_parts(chunk: Dict[str, Any]) -> List[Part]:
    candidates = chunk.get("candidates") or []
    if not candidates:
        return []
    raw_parts = ((candidates[0] or {}).get("content") or {}).get("parts") or []
    parts: List[Part] = []
    for raw in raw_parts:
        if isinstance(raw, dict) and raw.get("text") == "":
            continue
        try:
            parts.append(part_from_wire(raw))
        except ValueError:
            logger.debug("Ignoring unsupported part: %s", raw)
    return parts


async def _read_error(response: httpx.Response) -> str:
    error_text = f"HTTP Error: {response.status_code}"
    body = await response.aread()
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return error_text
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    return json.dumps(payload)


def _build_url(base_url: str, model_id: str) -> str:
    base = base_url.rstrip("/")
    if not base.endswith("/v1beta"):
        base = f"{base}/v1beta"
    return f"{base}/models/{model_id}:streamGenerateContent?alt=sse"


def _build_headers(api_key: str, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    headers = {
        "Content-Type": "application/json",
        "x-goog-api-key": api_key,
    }
    if extra:
        headers.update(extra)
    return headers


def _build_payload(contents: List[Dict[str, Any]], config: ChatConfig) -> Dict[str, Any]:
    return {
        "contents": contents,
        "generationConfig": {
            "temperature": config.temperature,
            "topP": config.top_p,
        },
    }
