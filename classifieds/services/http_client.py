from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpResult:
    ok: bool
    status_code: int | None
    detail: dict[str, Any]

    error_code: str | None = None
    error_message: str | None = None

    elapsed_ms: int | None = None


def _cap_text(s: str, *, max_chars: int) -> str:
    if len(s) <= max_chars:
        return s
    return s[:max_chars] + f"...(truncated, {len(s)} chars)"


def _api_error_message(detail: dict[str, Any], status_code: int) -> str:
    # Google APIs answer errors as {"error": {"code", "message", "status"}}
    err = detail.get("error")
    if isinstance(err, dict) and err.get("message"):
        return str(err["message"])
    return f"HTTP {status_code}"


class GenerativeApiClient:
    """
    Thin wrapper over one httpx.AsyncClient for the Gemini REST API.

    - Owns base URL and API key, so adapters only pick a model and a body.
    - No retries: a failed call is reported once and the caller decides.
    - Transport and HTTP failures come back as HttpResult(ok=False), never raised.
    """

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        timeout_seconds: float = 30.0,
        max_response_body_chars: int = 20_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._max_body = max_response_body_chars
        self._client = httpx.AsyncClient(
            headers={"x-goog-api-key": api_key},
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def generate_content(self, *, model: str, body: dict[str, Any]) -> HttpResult:
        return await self.post_json(f"models/{model}:generateContent", body)

    async def post_json(self, path: str, body: dict[str, Any]) -> HttpResult:
        try:
            resp = await self._client.post(f"{self._base_url}/{path}", json=body)
        except httpx.TimeoutException as e:
            log.warning("POST %s timed out", path)
            return HttpResult(ok=False, status_code=None, detail={"error": "timeout"},
                              error_code="TIMEOUT", error_message=str(e))
        except httpx.RequestError as e:
            # DNS errors, connection refused, TLS, etc.
            log.warning("POST %s failed: %s", path, e)
            return HttpResult(ok=False, status_code=None, detail={"error": "request_error"},
                              error_code="REQUEST_ERROR", error_message=str(e))

        try:
            parsed = resp.json()
            detail = parsed if isinstance(parsed, dict) else {"data": parsed}
        except ValueError:
            detail = {"raw": _cap_text(resp.text, max_chars=self._max_body)}

        elapsed_ms = int(resp.elapsed.total_seconds() * 1000)
        if resp.is_success:
            log.debug("POST %s -> %d in %dms", path, resp.status_code, elapsed_ms)
            return HttpResult(ok=True, status_code=resp.status_code, detail=detail, elapsed_ms=elapsed_ms)

        return HttpResult(
            ok=False,
            status_code=resp.status_code,
            detail=detail,
            error_code=f"HTTP_{resp.status_code}",
            error_message=_api_error_message(detail, resp.status_code),
            elapsed_ms=elapsed_ms,
        )
