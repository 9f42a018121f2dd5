"""
OpenRouter client used as the generative oracle.

Two calls are exposed:

- generate_structured(prompt, schema) asks for JSON conforming to a pydantic
  schema (OpenRouter `response_format: json_schema`) and validates the reply
  with that schema before returning it. Anything that is not a valid instance
  raises OracleError; callers never see unvalidated model output.
- generate_stream(messages, system_prompt) streams plain-text chunks from the
  chat completions SSE endpoint.

The httpx client is created by the application lifespan and closed at
shutdown (see app.main); timeouts are owned here.
"""

from __future__ import annotations

import base64
import json
import logging
import re
from typing import Any, AsyncIterator, TypeVar

import httpx
from pydantic import BaseModel, ValidationError as PydanticValidationError

from app.errors import OracleError

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


def extract_json(raw: str) -> Any:
    """Parse a JSON object out of model text, tolerating code fences and chatter."""
    text = (raw or "").strip()
    fenced = _FENCE_RE.match(text)
    if fenced:
        text = fenced.group(1)
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        match = _OBJECT_RE.search(text)
        if not match:
            raise OracleError(f"Oracle returned non-JSON output: {text[:200]}")
        try:
            return json.loads(match.group())
        except json.JSONDecodeError as e:
            raise OracleError(f"Oracle returned invalid JSON: {e}")


def attachment_part(file_name: str, mime_type: str, data: bytes) -> dict[str, Any]:
    """Message content part carrying a file: images as image_url, anything else (PDF) as file."""
    data_url = f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
    if mime_type.startswith("image/"):
        return {"type": "image_url", "image_url": {"url": data_url}}
    return {"type": "file", "file": {"filename": file_name, "file_data": data_url}}


def validate_output(schema: type[SchemaT], data: Any) -> SchemaT:
    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        logger.warning("Oracle output failed %s validation: %s", schema.__name__, e.error_count())
        raise OracleError(f"Oracle output does not match {schema.__name__}: {e.error_count()} issue(s)")


class OpenRouterOracle:
    def __init__(
        self,
        api_key: str | None,
        model: str,
        base_url: str = "https://openrouter.ai/api/v1",
        timeout: float = 120.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            raise OracleError("OPENROUTER_API_KEY is not configured")
        return {"Authorization": f"Bearer {self.api_key}"}

    async def generate_structured(
        self,
        prompt: str,
        schema: type[SchemaT],
        *,
        system: str | None = None,
        temperature: float | None = None,
        model: str | None = None,
        attachments: list[dict[str, Any]] | None = None,
    ) -> SchemaT:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        if attachments:
            messages.append({"role": "user", "content": [{"type": "text", "text": prompt}, *attachments]})
        else:
            messages.append({"role": "user", "content": prompt})

        payload: dict[str, Any] = {
            "model": model or self.model,
            "messages": messages,
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": schema.__name__, "schema": schema.model_json_schema()},
            },
        }
        if temperature is not None:
            payload["temperature"] = temperature

        logger.info("Oracle structured call: schema=%s model=%s", schema.__name__, payload["model"])
        try:
            response = await self._client.post(
                f"{self.base_url}/chat/completions",
                headers=self._headers(),
                json=payload,
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            raise OracleError(f"Oracle returned HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            raise OracleError(f"Oracle request failed: {e.__class__.__name__}")
        except ValueError:
            raise OracleError("Oracle returned a non-JSON response body")

        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise OracleError("Oracle response has no message content")

        return validate_output(schema, extract_json(content))

    async def generate_stream(
        self,
        messages: list[dict[str, str]],
        system_prompt: str,
        *,
        temperature: float | None = None,
    ) -> AsyncIterator[str]:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "system", "content": system_prompt}, *messages],
            "stream": True,
        }
        if temperature is not None:
            payload["temperature"] = temperature

        headers = self._headers()
        try:
            async with self._client.stream(
                "POST", f"{self.base_url}/chat/completions", headers=headers, json=payload
            ) as response:
                if response.status_code >= 400:
                    await response.aread()
                    raise OracleError(f"Oracle returned HTTP {response.status_code}")
                async for line in response.aiter_lines():
                    # SSE comments (": OPENROUTER PROCESSING") and blank keep-alives
                    if not line or not line.startswith("data:"):
                        continue
                    data = line[len("data:"):].strip()
                    if data == "[DONE]":
                        break
                    try:
                        chunk = json.loads(data)
                    except json.JSONDecodeError:
                        continue
                    err = chunk.get("error")
                    if err:
                        msg = err.get("message", "unknown") if isinstance(err, dict) else str(err)
                        raise OracleError(f"Oracle stream error: {msg}")
                    choices = chunk.get("choices") or []
                    if not choices:
                        continue
                    text = (choices[0].get("delta") or {}).get("content")
                    if text:
                        yield text
        except httpx.HTTPError as e:
            raise OracleError(f"Oracle stream failed: {e.__class__.__name__}")
