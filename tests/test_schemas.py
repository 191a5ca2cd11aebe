from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from records.schemas import Event, Location, LocationRef, Scrape


def test_location_serializes_with_predicate_names():
    loc = Location(id="kls", name="Keynes Lecture Theatre S", disabled_access=True)
    assert loc.to_mutation_json() == {
        "location.id": "kls",
        "location.name": "Keynes Lecture Theatre S",
        "location.disabled_access": True,
    }


def test_unset_fields_are_omitted():
    assert Event(uid="0x5", title="Lecture").to_mutation_json() == {
        "uid": "0x5",
        "event.title": "Lecture",
    }


def test_event_decodes_store_json():
    event = Event.model_validate(
        {
            "uid": "0x10",
            "event.id": "CO510-lec-1",
            "event.title": "Software Engineering",
            "event.start_date": "2024-01-15T09:00:00Z",
            "event.end_date": "2024-01-15T10:00:00Z",
            "event.organiser": {"uid": "0x11", "person.name": "Dr Smith"},
            "event.part_of_module": [{"uid": "0x12", "module.code": "CO510"}],
            "event.location": {"uid": "0x13", "location.id": "kls", "location.name": "KLT S"},
        }
    )
    assert event.uid == "0x10"
    assert event.external_id == "CO510-lec-1"
    assert event.start_date == datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)
    assert event.organiser.name == "Dr Smith"
    assert event.module.code == "CO510"
    assert event.location == LocationRef(uid="0x13", id="kls", name="KLT S")


def test_event_rejects_multiple_locations():
    with pytest.raises(ValidationError):
        Event.model_validate({"event.location": [{"uid": "0x1"}, {"uid": "0x2"}]})


def test_event_nested_refs_serialize_by_alias():
    event = Event(id="e1", location=LocationRef(uid="0x13"))
    assert event.to_mutation_json() == {"event.id": "e1", "event.location": {"uid": "0x13"}}


def test_scrape_found_events_accepts_single_object():
    scrape = Scrape.model_validate(
        {
            "uid": "0x1",
            "scrape.id": 7,
            "scrape.found_event": {"uid": "0x2", "event.id": "e1", "event.title": "Lab"},
        }
    )
    assert scrape.external_id == 7
    assert [e.uid for e in scrape.found_events] == ["0x2"]


def test_scrape_json_datetime_round_trips():
    when = datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)
    body = Scrape(id=3, last_scraped=when).to_mutation_json()
    assert body["scrape.id"] == 3
    assert Scrape.model_validate(body).last_scraped == when
