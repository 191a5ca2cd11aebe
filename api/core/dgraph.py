"""
Dgraph HTTP client helpers.

Used endpoints:
- POST /query?ro=true               -> {"data": {...}}
- POST /mutate?commitNow=true       -> {"data": {"code": "...", "uids": {...}}}
- POST /alter                       -> {"data": {"code": "Success", ...}}
- GET  /health                      -> [{"instance": "alpha", "status": "healthy", ...}]

Errors come back as {"errors": [{"message": "...", "extensions": {"code": "..."}}]},
usually with HTTP 200, so the envelope has to be checked on every response.

This module also owns the process-wide client. FastAPI opens it on startup and
closes it on shutdown (see `api/main.py`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)

ABORTED_MARKER = "Transaction has been aborted"


# Store failures are explicit and separable from transport errors (httpx.HTTPError).
class DgraphError(RuntimeError):
    pass


class DgraphAbortedError(DgraphError):
    """
    The store aborted the transaction (write conflict). Not retried here.
    """


class DgraphDecodeError(DgraphError):
    """
    The store answered, but not in the shape we expected.
    """


@dataclass(frozen=True)
class MutationResult:
    code: str
    message: str
    uids: dict[str, str] = field(default_factory=dict)

    def uid_for(self, blank_node: str) -> str | None:
        return self.uids.get(blank_node)


def _normalize_base_url(base_url: str) -> str:
    base_url = (base_url or "").strip()
    if not base_url:
        raise DgraphError("DGRAPH_URL is empty.")
    if "://" not in base_url:
        base_url = f"http://{base_url}"
    return base_url.rstrip("/")


def _error_message(errors: Any) -> str:
    if not isinstance(errors, list) or not errors:
        return "unknown Dgraph error"
    messages = []
    for err in errors:
        if isinstance(err, dict):
            messages.append(str(err.get("message") or err))
        else:
            messages.append(str(err))
    return "; ".join(messages)


def _raise_for_errors(payload: dict[str, Any]) -> None:
    errors = payload.get("errors")
    if not errors:
        return None
    message = _error_message(errors)
    if ABORTED_MARKER in message:
        raise DgraphAbortedError(message)
    raise DgraphError(message)


def _decode_envelope(resp: httpx.Response, *, operation: str) -> dict[str, Any]:
    try:
        payload = resp.json()
    except ValueError as exc:
        if resp.status_code != 200:
            # Avoid dumping huge bodies; include a small snippet.
            raise DgraphError(f"Dgraph {operation} failed: {resp.status_code} {resp.text[:500]}") from exc
        raise DgraphDecodeError(f"Dgraph {operation} returned invalid JSON.") from exc

    if not isinstance(payload, dict):
        raise DgraphDecodeError(f"Dgraph {operation} returned a non-object envelope.")

    _raise_for_errors(payload)

    if resp.status_code != 200:
        raise DgraphError(f"Dgraph {operation} failed: {resp.status_code} {resp.text[:500]}")

    return payload


class DgraphClient:
    """
    Thin async wrapper over the Dgraph alpha HTTP API.

    Every call is one request and one store transaction. Nothing is cached,
    batched or retried; callers own retries.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = _normalize_base_url(base_url)
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout_s,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def query(self, query: str, variables: dict[str, str] | None = None) -> dict[str, Any]:
        """
        Run a read-only DQL query and return the `data` object.

        Dgraph expects every variable value as a string, whatever its DQL type.
        """
        body: dict[str, Any] = {"query": query}
        if variables:
            body["variables"] = {k: str(v) for k, v in variables.items()}

        resp = await self._http.post("/query", params={"ro": "true"}, json=body)
        payload = _decode_envelope(resp, operation="query")

        data = payload.get("data")
        if not isinstance(data, dict):
            raise DgraphDecodeError("Dgraph query response has no `data` object.")
        return data

    async def mutate(self, set_json: Any, *, commit_now: bool = True) -> MutationResult:
        """
        Submit a JSON set mutation. With `commit_now` the transaction commits
        in the same request.
        """
        params = {"commitNow": "true"} if commit_now else None
        resp = await self._http.post("/mutate", params=params, json={"set": set_json})
        payload = _decode_envelope(resp, operation="mutate")

        data = payload.get("data")
        if not isinstance(data, dict):
            raise DgraphDecodeError("Dgraph mutate response has no `data` object.")

        uids = data.get("uids") or {}
        if not isinstance(uids, dict):
            raise DgraphDecodeError("Dgraph mutate response has a malformed `uids` map.")

        return MutationResult(
            code=str(data.get("code") or ""),
            message=str(data.get("message") or ""),
            uids={str(k): str(v) for k, v in uids.items()},
        )

    async def alter(self, schema: str) -> None:
        resp = await self._http.post("/alter", content=schema.encode("utf-8"))
        _decode_envelope(resp, operation="alter")

    async def health(self) -> list[dict[str, Any]]:
        resp = await self._http.get("/health")
        if resp.status_code != 200:
            raise DgraphError(f"Dgraph health check failed: {resp.status_code} {resp.text[:300]}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise DgraphDecodeError("Dgraph health returned invalid JSON.") from exc
        # Older alphas answer with a single object.
        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list):
            raise DgraphDecodeError("Dgraph health returned an unexpected shape.")
        return data


_client: DgraphClient | None = None


async def init_client(base_url: str, *, timeout_s: float = 30.0) -> DgraphClient:
    global _client
    if _client is not None:
        return _client
    _client = DgraphClient(base_url, timeout_s=timeout_s)
    logger.info("dgraph_client_opened base_url=%s", _client.base_url)
    return _client


async def close_client() -> None:
    global _client
    if _client is None:
        return None
    await _client.aclose()
    _client = None


def client() -> DgraphClient:
    if _client is None:
        raise RuntimeError("Dgraph client is not initialized. Call init_client() on startup.")
    return _client


def get_client() -> DgraphClient:
    """
    FastAPI dependency; tests override it with a client on a mock transport.
    """
    return client()
