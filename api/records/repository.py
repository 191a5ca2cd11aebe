"""
Record persistence (DQL).
This module is where the graph queries and mutations live.

Every operation is a single round trip: one read-only query for lookups,
one commit-now set mutation for upserts.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import ValidationError

from core.dgraph import DgraphClient, DgraphDecodeError, MutationResult

from . import schemas

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=schemas.GraphRecord)

# Predicate names cannot be passed as DQL variables, so they are checked
# before being placed in a query.
PREDICATE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z0-9_]+)*$")

SCHEMA = """
scrape.id: int @index(int) @upsert .
scrape.last_scraped: datetime .
scrape.found_event: [uid] @reverse .

event.id: string @index(exact) @upsert .
event.title: string @index(term) .
event.description: string .
event.start_date: datetime @index(hour) .
event.end_date: datetime .
event.organiser: uid .
event.part_of_module: uid .
event.location: uid @reverse .

location.id: string @index(exact) @upsert .
location.name: string @index(term) .
location.disabled_access: bool .

person.name: string @index(exact) .
module.code: string @index(exact) .
"""


class RecordNotFoundError(LookupError):
    """
    A lookup by uid matched nothing. The caller held the uid, so this is an error.
    """

    def __init__(self, kind: str, uid: str) -> None:
        super().__init__(f"No {kind} found with uid {uid}")
        self.kind = kind
        self.uid = uid


@dataclass(frozen=True)
class RecordKind(Generic[R]):
    name: str
    model: type[R]
    id_predicate: str
    id_type: str
    projection: str
    blank_node: str

    def query_by_uid(self) -> str:
        return (
            f"query Find{self.name}($uid: string) {{\n"
            f"  find{self.name}(func: uid($uid)) {{\n"
            f"{self.projection}"
            f"  }}\n"
            f"}}\n"
        )

    def query_by_external_id(self) -> str:
        return (
            f"query Find{self.name}NoUID($id: {self.id_type}) {{\n"
            f"  find{self.name}(func: eq({self.id_predicate}, $id)) {{\n"
            f"{self.projection}"
            f"  }}\n"
            f"}}\n"
        )

    @property
    def result_key(self) -> str:
        return f"find{self.name}"


SCRAPE = RecordKind(
    name="Scrape",
    model=schemas.Scrape,
    id_predicate="scrape.id",
    id_type="int",
    projection="""\
    uid
    scrape.id
    scrape.last_scraped
    scrape.found_event {
      uid
      event.id
      event.title
    }
""",
    blank_node="scrape",
)

EVENT = RecordKind(
    name="Event",
    model=schemas.Event,
    id_predicate="event.id",
    id_type="string",
    projection="""\
    uid
    event.id
    event.title
    event.description
    event.start_date
    event.end_date
    event.organiser {
      uid
      person.name
    }
    event.part_of_module {
      uid
      module.code
    }
    event.location {
      uid
      location.id
      location.name
    }
""",
    blank_node="event",
)

LOCATION = RecordKind(
    name="Location",
    model=schemas.Location,
    id_predicate="location.id",
    id_type="string",
    projection="""\
    uid
    location.id
    location.name
    location.disabled_access
""",
    blank_node="location",
)


def _first_record(kind: RecordKind[R], data: dict[str, Any]) -> R | None:
    rows = data.get(kind.result_key)
    if rows is None:
        raise DgraphDecodeError(f"Query result has no `{kind.result_key}` key.")
    if not isinstance(rows, list):
        raise DgraphDecodeError(f"Query result `{kind.result_key}` is not a list.")
    if not rows:
        return None
    try:
        return kind.model.model_validate(rows[0])
    except ValidationError as exc:
        raise DgraphDecodeError(f"Could not decode {kind.name}: {exc}") from exc


class RecordRepository(Generic[R]):
    """
    Lookup and upsert for one record kind.
    """

    def __init__(self, client: DgraphClient, kind: RecordKind[R]) -> None:
        self.client = client
        self.kind = kind

    async def resolve(self, record: R) -> R | None:
        """
        Return the stored version of `record`.

        The uid wins when both identities are set. A missing uid match raises
        RecordNotFoundError; a missing business-id match returns None.
        """
        if record.uid:
            return await self.get_by_uid(record.uid)
        if record.external_id is not None:
            return await self.get_by_external_id(record.external_id)
        raise ValueError(f"{self.kind.name} has neither uid nor {self.kind.id_predicate} set.")

    async def get_by_uid(self, uid: str) -> R:
        data = await self.client.query(self.kind.query_by_uid(), {"$uid": uid})
        found = _first_record(self.kind, data)
        if found is None:
            raise RecordNotFoundError(self.kind.name, uid)
        return found

    async def get_by_external_id(self, external_id: Any) -> R | None:
        data = await self.client.query(self.kind.query_by_external_id(), {"$id": str(external_id)})
        return _first_record(self.kind, data)

    async def upsert(self, record: R) -> MutationResult:
        """
        Set-mutate the record with an immediate commit.

        Without a uid the node gets the blank name `_:<kind>`, so the minted
        uid is `result.uid_for(kind.blank_node)`. Aborts are not retried.
        """
        payload = record.to_mutation_json()
        if not record.uid:
            payload["uid"] = f"_:{self.kind.blank_node}"

        result = await self.client.mutate(payload, commit_now=True)
        logger.info(
            "record_upserted kind=%s uid=%s uids=%s",
            self.kind.name,
            record.uid,
            result.uids,
        )
        return result

    async def count(self) -> int:
        return await count_nodes_with_field(self.client, self.kind.id_predicate)


async def count_nodes_with_field(client: DgraphClient, field: str) -> int:
    """
    Number of nodes that carry `field`; a rough population count for a node type.
    """
    field = (field or "").strip()
    if not PREDICATE_RE.match(field):
        raise ValueError(f"Invalid predicate name: {field!r}")

    q = (
        "query Count {\n"
        f"  nodeCount(func: has({field})) {{\n"
        "    nodeCount: count(uid)\n"
        "  }\n"
        "}\n"
    )
    data = await client.query(q)

    rows = data.get("nodeCount")
    if not isinstance(rows, list):
        raise DgraphDecodeError("Count result has no `nodeCount` list.")
    if not rows:
        return 0

    first = rows[0]
    value = first.get("nodeCount") if isinstance(first, dict) else None
    if isinstance(value, bool) or not isinstance(value, int):
        raise DgraphDecodeError("Count result `nodeCount` is not an integer.")
    return value


async def ensure_schema(client: DgraphClient) -> None:
    await client.alter(SCHEMA)
    logger.info("dgraph_schema_applied")


def scrapes(client: DgraphClient) -> RecordRepository[schemas.Scrape]:
    return RecordRepository(client, SCRAPE)


def events(client: DgraphClient) -> RecordRepository[schemas.Event]:
    return RecordRepository(client, EVENT)


def locations(client: DgraphClient) -> RecordRepository[schemas.Location]:
    return RecordRepository(client, LOCATION)


async def get_scrape(client: DgraphClient, scrape: schemas.Scrape) -> schemas.Scrape | None:
    return await scrapes(client).resolve(scrape)


async def upsert_scrape(client: DgraphClient, scrape: schemas.Scrape) -> MutationResult:
    return await scrapes(client).upsert(scrape)


async def get_event(client: DgraphClient, event: schemas.Event) -> schemas.Event | None:
    return await events(client).resolve(event)


async def upsert_event(client: DgraphClient, event: schemas.Event) -> MutationResult:
    return await events(client).upsert(event)


async def get_location(client: DgraphClient, location: schemas.Location) -> schemas.Location | None:
    return await locations(client).resolve(location)


async def get_location_from_kent_slug(client: DgraphClient, slug: str) -> schemas.Location | None:
    return await locations(client).get_by_external_id(slug)


async def upsert_location(client: DgraphClient, location: schemas.Location) -> MutationResult:
    return await locations(client).upsert(location)
