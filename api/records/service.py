"""
Record service layer.

Wraps the repository for the HTTP routes:
- not found / absent        -> 404
- bad count field           -> 400
- aborted write             -> 409
- other store/decode errors -> 502
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import Any, TypeVar

import httpx
from fastapi import HTTPException, status

from core.dgraph import DgraphAbortedError, DgraphClient, DgraphError, MutationResult

from . import repository, schemas

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _call_store(call: Awaitable[T]) -> T:
    try:
        return await call
    except repository.RecordNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except DgraphAbortedError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except DgraphError as exc:
        logger.warning("dgraph_request_failed error=%s", exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except httpx.HTTPError as exc:
        logger.warning("dgraph_unreachable error=%s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to reach Dgraph: {exc}",
        ) from exc


def _record_body(record: schemas.GraphRecord | None, *, not_found: str) -> dict[str, Any]:
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found)
    return record.model_dump(mode="json", by_alias=True, exclude_none=True)


def _upsert_body(result: MutationResult, *, record_uid: str | None, blank_node: str) -> dict[str, Any]:
    response = schemas.UpsertResponse(
        uid=record_uid or result.uid_for(blank_node),
        uids=result.uids,
        code=result.code,
        message=result.message,
    )
    return response.model_dump()


async def get_by_uid(client: DgraphClient, kind: repository.RecordKind, uid: str) -> dict[str, Any]:
    repo = repository.RecordRepository(client, kind)
    record = await _call_store(repo.get_by_uid(uid))
    return _record_body(record, not_found=f"No {kind.name} found with uid {uid}")


async def get_by_external_id(
    client: DgraphClient,
    kind: repository.RecordKind,
    external_id: Any,
) -> dict[str, Any]:
    repo = repository.RecordRepository(client, kind)
    record = await _call_store(repo.get_by_external_id(external_id))
    return _record_body(
        record,
        not_found=f"No {kind.name} found with {kind.id_predicate} {external_id}",
    )


async def upsert(
    client: DgraphClient,
    kind: repository.RecordKind,
    record: schemas.GraphRecord,
) -> dict[str, Any]:
    repo = repository.RecordRepository(client, kind)
    result = await _call_store(repo.upsert(record))
    return _upsert_body(result, record_uid=record.uid, blank_node=kind.blank_node)


async def count_field(client: DgraphClient, field: str) -> dict[str, Any]:
    try:
        count = await _call_store(repository.count_nodes_with_field(client, field))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return schemas.CountResponse(field=field, count=count).model_dump()


async def store_health(client: DgraphClient) -> dict[str, Any]:
    try:
        instances = await client.health()
    except (DgraphError, httpx.HTTPError) as exc:
        logger.warning("dgraph_health_failed error=%s", exc)
        return {"status": "degraded", "dgraph": "unreachable", "detail": str(exc)}

    healthy = all(str(item.get("status") or "") == "healthy" for item in instances if isinstance(item, dict))
    return {
        "status": "ok" if healthy else "degraded",
        "dgraph": "healthy" if healthy else "unhealthy",
        "instances": len(instances),
    }
