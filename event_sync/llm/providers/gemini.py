from __future__ import annotations

import base64
import json
import logging
import math
from typing import Any

import httpx

from ...config import ExtractionConfig, LoggingConfig, ProviderConfig
from ...core.types import ExtractedRecord, RateLimited, WorkItem
from ...drive.base import PDF_MIME_TYPE
from ...errors import ExtractionFailedError, MalformedResponseError, UnsupportedContentError
from ...http_utils import google_error_message
from ...logging_utils import log_event, redact_text, redact_value, truncate_text
from ...tracing import record_span_error, set_span_output, start_span
from ..prompts import extraction_prompt
from .base import ExtractionProvider

_RETRY_INFO_TYPE = "type.googleapis.com/google.rpc.RetryInfo"


class GeminiExtractor(ExtractionProvider):
    def __init__(
        self,
        cfg: ProviderConfig,
        extraction_cfg: ExtractionConfig,
        api_key: str | None,
        log_cfg: LoggingConfig,
        llm_logger: logging.Logger | None,
        transport: httpx.BaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("Missing Google API key")
        self.cfg = cfg
        self.extraction_cfg = extraction_cfg
        self.api_key = api_key
        self.log_cfg = log_cfg
        self.llm_logger = llm_logger
        self._transport = transport

    def extract(self, item: WorkItem, content: bytes) -> ExtractedRecord | RateLimited:
        mime_type = item.mime_type or ""
        if mime_type != PDF_MIME_TYPE:
            raise UnsupportedContentError(f"Not a PDF: {item.name} ({mime_type or 'unknown'})")

        prompt = extraction_prompt()
        payload = {
            "contents": [
                {
                    "parts": [
                        {"text": prompt},
                        {
                            "inlineData": {
                                "mimeType": mime_type,
                                "data": base64.b64encode(content).decode("ascii"),
                            }
                        },
                    ]
                }
            ],
            "generationConfig": {"responseMimeType": "application/json"},
        }

        with start_span(
            "event_sync.extract",
            kind="llm",
            input_value={"file_id": item.id, "file_name": item.name, "bytes": len(content)},
            attributes={"model": self.cfg.model},
        ) as span:
            try:
                result = self._call(item, payload, prompt)
            except Exception as exc:
                record_span_error(span, exc)
                raise
            if isinstance(result, RateLimited):
                set_span_output(span, {"status": "rate_limited", "retry_after": result.retry_after})
            else:
                set_span_output(span, {"status": "ok", "title": result.title})
            return result

    def _call(
        self,
        item: WorkItem,
        payload: dict[str, Any],
        prompt: str,
    ) -> ExtractedRecord | RateLimited:
        try:
            response = self._post(payload)
        except httpx.HTTPError as exc:
            self._log_llm_response(item, status="transport_error", content=str(exc), prompt=prompt)
            raise ExtractionFailedError(f"Gemini request failed: {exc}") from exc

        if response.status_code == 429:
            retry_after = _retry_after_seconds(
                response,
                default=self.extraction_cfg.default_retry_seconds,
                margin=self.extraction_cfg.retry_margin_seconds,
            )
            self._log_llm_response(
                item, status="rate_limited", content=response.text, prompt=prompt
            )
            return RateLimited(retry_after=retry_after)

        if response.status_code != 200:
            self._log_llm_response(item, status="provider_error", content=response.text, prompt=prompt)
            raise ExtractionFailedError(
                f"Gemini API error ({response.status_code}): {google_error_message(response)}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            self._log_llm_response(item, status="parse_error", content=response.text, prompt=prompt)
            raise MalformedResponseError("Gemini returned a non-JSON body") from exc

        content = _extract_text(data)
        if content is None:
            self._log_llm_response(item, status="parse_error", content=response.text, prompt=prompt)
            raise MalformedResponseError("Gemini response has no candidates[0].content.parts[0].text")

        try:
            obj = _parse_json_response(content)
        except json.JSONDecodeError as exc:
            self._log_llm_response(item, status="parse_error", content=content, prompt=prompt)
            raise MalformedResponseError(f"Gemini returned unparsable JSON: {exc.msg}") from exc

        record = _record_from_obj(obj)
        if record is None:
            self._log_llm_response(item, status="parse_error", content=content, prompt=prompt)
            raise MalformedResponseError("Gemini returned JSON that is not an object")

        self._log_llm_response(
            item,
            status="ok" if record.is_valid else "empty",
            content=content,
            prompt=prompt,
        )
        return record

    def _post(self, payload: dict[str, Any]) -> httpx.Response:
        url = f"{self.cfg.base_url}/v1beta/models/{self.cfg.model}:generateContent"
        params = {"key": self.api_key}
        with httpx.Client(
            timeout=self.cfg.timeout_seconds,
            trust_env=self.cfg.trust_env,
            transport=self._transport,
        ) as client:
            return client.post(url, params=params, json=payload)

    def _log_llm_response(self, item: WorkItem, status: str, content: str, prompt: str) -> None:
        if self.llm_logger is None:
            return
        detail = self.log_cfg.llm_log_detail
        redaction = self.log_cfg.llm_log_redaction
        payload: dict[str, Any] = {
            "event": "llm_response",
            "status": status,
            "model": self.cfg.model,
            "file_id": item.id,
            "file_name": item.name,
            "file_link": redact_value(item.link, redaction),
        }
        if detail == "summary_only":
            payload["raw_response"] = ""
        elif detail == "prompt_response":
            payload["raw_prompt"] = truncate_text(redact_text(prompt, redaction))
            payload["raw_response"] = truncate_text(redact_text(content or "", redaction))
        else:
            payload["raw_response"] = truncate_text(redact_text(content or "", redaction))
        log_event(self.llm_logger, "LLM response", **payload)


def _extract_text(data: Any) -> str | None:
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None


def _record_from_obj(obj: Any) -> ExtractedRecord | None:
    if isinstance(obj, list):
        obj = next((entry for entry in obj if isinstance(entry, dict)), None)
    if not isinstance(obj, dict):
        return None
    return ExtractedRecord.from_payload(obj)


def _retry_after_seconds(response: httpx.Response, default: int, margin: int) -> int:
    """Read the server-suggested delay from a 429 response.

    Google APIs put it in error.details[RetryInfo].retryDelay as "<n>s";
    a Retry-After header is honoured as a fallback. The margin is added
    only to a server-provided delay.
    """
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        for detail in body["error"].get("details") or []:
            if not isinstance(detail, dict) or detail.get("@type") != _RETRY_INFO_TYPE:
                continue
            seconds = _parse_duration(detail.get("retryDelay"))
            if seconds is not None:
                return seconds + margin

    seconds = _parse_duration(response.headers.get("Retry-After"))
    if seconds is not None:
        return seconds + margin
    return default


def _parse_duration(value: Any) -> int | None:
    if value is None:
        return None
    text = str(value).strip().lower()
    if text.endswith("s"):
        text = text[:-1]
    try:
        seconds = float(text)
    except ValueError:
        return None
    if seconds < 0:
        return None
    return math.ceil(seconds)


def _parse_json_response(content: str) -> Any:
    if not content:
        raise json.JSONDecodeError("Empty content", content or "", 0)
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        extracted = _extract_json_snippet(content)
        return json.loads(extracted)


def _extract_json_snippet(content: str) -> str:
    fence = _extract_fenced_json(content)
    if fence:
        return fence
    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise json.JSONDecodeError("No JSON object found", content, 0)
    return content[start : end + 1]


def _extract_fenced_json(content: str) -> str | None:
    lines = content.splitlines()
    start_idx = None
    for idx, line in enumerate(lines):
        if line.strip().startswith("```") and "json" in line.lower():
            start_idx = idx + 1
            break
    if start_idx is None:
        return None
    for idx in range(start_idx, len(lines)):
        if lines[idx].strip().startswith("```"):
            snippet = "\n".join(lines[start_idx:idx]).strip()
            return snippet or None
    return None
