"""
Record API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from core.dgraph import DgraphClient, get_client

from . import repository, schemas, service

router = APIRouter()


@router.get("/scrapes/{uid}")
async def get_scrape(uid: str, client: DgraphClient = Depends(get_client)) -> dict:
    return await service.get_by_uid(client, repository.SCRAPE, uid)


@router.get("/scrapes")
async def find_scrape(
    scrape_id: int = Query(...),
    client: DgraphClient = Depends(get_client),
) -> dict:
    return await service.get_by_external_id(client, repository.SCRAPE, scrape_id)


@router.put("/scrapes")
async def upsert_scrape(scrape: schemas.Scrape, client: DgraphClient = Depends(get_client)) -> dict:
    return await service.upsert(client, repository.SCRAPE, scrape)


@router.get("/events/{uid}")
async def get_event(uid: str, client: DgraphClient = Depends(get_client)) -> dict:
    return await service.get_by_uid(client, repository.EVENT, uid)


@router.get("/events")
async def find_event(
    event_id: str = Query(..., min_length=1),
    client: DgraphClient = Depends(get_client),
) -> dict:
    return await service.get_by_external_id(client, repository.EVENT, event_id)


@router.put("/events")
async def upsert_event(event: schemas.Event, client: DgraphClient = Depends(get_client)) -> dict:
    return await service.upsert(client, repository.EVENT, event)


@router.get("/locations/slug/{slug}")
async def get_location_by_slug(slug: str, client: DgraphClient = Depends(get_client)) -> dict:
    """
    Look a location up by the slug Kent uses internally.
    """
    return await service.get_by_external_id(client, repository.LOCATION, slug)


@router.get("/locations/{uid}")
async def get_location(uid: str, client: DgraphClient = Depends(get_client)) -> dict:
    return await service.get_by_uid(client, repository.LOCATION, uid)


@router.put("/locations")
async def upsert_location(location: schemas.Location, client: DgraphClient = Depends(get_client)) -> dict:
    return await service.upsert(client, repository.LOCATION, location)


@router.get("/stats/count")
async def count_field(
    field: str = Query(..., min_length=1, max_length=200),
    client: DgraphClient = Depends(get_client),
) -> dict:
    return await service.count_field(client, field)
