"""
Pydantic shapes for graph records.

Field aliases are the Dgraph predicate names (`event.title`, `location.id`, ...).
The store schema and every query depend on them, so they must not change.
Python code uses the plain attribute names; JSON in and out uses the aliases.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _single(value: Any) -> Any:
    # Dgraph returns uid edges as lists unless the predicate is declared `uid`.
    if isinstance(value, list):
        if not value:
            return None
        if len(value) > 1:
            raise ValueError("expected a single related node")
        return value[0]
    return value


class GraphRecord(BaseModel):
    """
    Base for everything stored as a node.

    `uid` is minted by the store on first upsert and never changes.
    `external_id` is the business key used before the uid is known.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    external_id_attr: ClassVar[str] = ""

    uid: str | None = Field(default=None, alias="uid")

    @property
    def external_id(self) -> Any:
        if not self.external_id_attr:
            return None
        return getattr(self, self.external_id_attr)

    def to_mutation_json(self) -> dict[str, Any]:
        """
        JSON form for a set mutation. Unset fields are left out so the store
        keeps whatever it already has for them.
        """
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PersonRef(GraphRecord):
    name: str | None = Field(default=None, alias="person.name")


class ModuleRef(GraphRecord):
    code: str | None = Field(default=None, alias="module.code")


class LocationRef(GraphRecord):
    id: str | None = Field(default=None, alias="location.id")
    name: str | None = Field(default=None, alias="location.name")


class EventRef(GraphRecord):
    id: str | None = Field(default=None, alias="event.id")
    title: str | None = Field(default=None, alias="event.title")


class Location(GraphRecord):
    external_id_attr: ClassVar[str] = "id"

    id: str | None = Field(default=None, alias="location.id")
    name: str | None = Field(default=None, alias="location.name")
    disabled_access: bool | None = Field(default=None, alias="location.disabled_access")


class Event(GraphRecord):
    external_id_attr: ClassVar[str] = "id"

    id: str | None = Field(default=None, alias="event.id")
    title: str | None = Field(default=None, alias="event.title")
    description: str | None = Field(default=None, alias="event.description")
    start_date: datetime | None = Field(default=None, alias="event.start_date")
    end_date: datetime | None = Field(default=None, alias="event.end_date")
    organiser: PersonRef | None = Field(default=None, alias="event.organiser")
    module: ModuleRef | None = Field(default=None, alias="event.part_of_module")
    location: LocationRef | None = Field(default=None, alias="event.location")

    @field_validator("organiser", "module", "location", mode="before")
    @classmethod
    def _unwrap_edge(cls, value: Any) -> Any:
        return _single(value)


class Scrape(GraphRecord):
    external_id_attr: ClassVar[str] = "id"

    id: int | None = Field(default=None, alias="scrape.id")
    last_scraped: datetime | None = Field(default=None, alias="scrape.last_scraped")
    found_events: list[EventRef] | None = Field(default=None, alias="scrape.found_event")

    @field_validator("found_events", mode="before")
    @classmethod
    def _listify_edge(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return [value]
        return value


class UpsertResponse(BaseModel):
    uid: str | None = None
    uids: dict[str, str] = Field(default_factory=dict)
    code: str = ""
    message: str = ""


class CountResponse(BaseModel):
    field: str
    count: int
