"""Tests for the trip/photo store."""

from __future__ import annotations

import asyncio
import json

import pytest

from conftest import FlakyStorage, SlowStorage, StepClock, run
from core.errors import NotFoundError, PersistenceError, ValidationError
from core.models import Location, NewPhoto
from core.services.trip_store import STORAGE_KEY, TripStore


async def _seed(store: TripStore) -> dict[str, int]:
    """Create trips A (0 photos), B (3) and C (1) and return their ids."""
    a = await store.add_trip("A")
    b = await store.add_trip("B", "second")
    c = await store.add_trip("C")
    await store.add_photos(b.id, [NewPhoto(f"file:///b{i}.jpg") for i in range(3)])
    await store.add_photo(c.id, "file:///c.jpg", location=Location(50.06, 19.94))
    return {"A": a.id, "B": b.id, "C": c.id}


class TestAddTrip:
    def test_assigns_id_date_and_trims(self, store, clock):
        trip = run(store.add_trip("  Kraków  ", "  weekend "))
        assert trip.id == 1
        assert trip.title == "Kraków"
        assert trip.description == "weekend"
        assert trip.date is not None
        assert store.next_trip_id == 2

    def test_listed_exactly_once(self, store):
        trip = run(store.add_trip("Gdańsk", "sea"))
        matches = [t for t in store.list_trips_by_date() if t.title == "Gdańsk"]
        assert len(matches) == 1
        assert matches[0] == trip

    @pytest.mark.parametrize("title", ["", "   ", "\n\t", None])
    def test_blank_title_rejected(self, store, storage, title):
        with pytest.raises(ValidationError):
            run(store.add_trip(title))
        assert store.trips == []
        assert store.next_trip_id == 1
        assert storage.set_calls == 0

    def test_persists(self, store, storage):
        run(store.add_trip("Wrocław"))
        doc = json.loads(storage.data[STORAGE_KEY])
        assert doc["trips"][0]["title"] == "Wrocław"
        assert doc["nextTripId"] == 2


class TestUpdateTrip:
    def test_changes_text_only(self, store):
        trip = run(store.add_trip("Old", "old"))
        updated = run(store.update_trip(trip.id, " New ", " new "))
        assert updated.title == "New"
        assert updated.description == "new"
        assert updated.id == trip.id
        assert updated.date == trip.date

    def test_missing_trip(self, store):
        with pytest.raises(NotFoundError) as info:
            run(store.update_trip(42, "x"))
        assert info.value.entity_id == 42

    def test_not_found_checked_before_validation(self, store):
        with pytest.raises(NotFoundError):
            run(store.update_trip(42, ""))

    def test_blank_title_leaves_trip_unchanged(self, store):
        trip = run(store.add_trip("Keep", "me"))
        with pytest.raises(ValidationError):
            run(store.update_trip(trip.id, "  ", "other"))
        assert store.get_trip(trip.id) == trip


class TestDeleteTrip:
    def test_cascades_to_own_photos_only(self, store):
        ids = run(_seed(store))
        photos_before = {p.id: p for p in store.photos if p.trip_id != ids["B"]}

        assert run(store.delete_trip(ids["B"])) is True

        assert store.get_trip(ids["B"]) is None
        assert [p for p in store.photos if p.trip_id == ids["B"]] == []
        assert {p.id: p for p in store.photos} == photos_before
        assert [t.title for t in store.trips] == ["A", "C"]

    def test_idempotent(self, store, storage):
        ids = run(_seed(store))
        run(store.delete_trip(ids["A"]))
        state = store.to_document()
        calls = storage.set_calls

        assert run(store.delete_trip(ids["A"])) is False
        assert store.to_document() == state
        assert storage.set_calls == calls

    def test_unknown_id_is_noop(self, store):
        assert run(store.delete_trip(999)) is False


class TestPhotos:
    def test_add_photo_requires_trip(self, store, storage):
        with pytest.raises(NotFoundError):
            run(store.add_photo(1, "file:///x.jpg"))
        assert store.photos == []
        assert store.next_photo_id == 1
        assert storage.set_calls == 0

    def test_add_photo_fields(self, store):
        trip = run(store.add_trip("T"))
        loc = Location(latitude=52.2297, longitude=21.0122)
        photo = run(store.add_photo(trip.id, "content://img/1", "  rynek ", loc))
        assert photo.id == 1
        assert photo.trip_id == trip.id
        assert photo.uri == "content://img/1"
        assert photo.description == "rynek"
        assert photo.location == loc
        assert photo.date is not None

    def test_batch_uses_single_persist(self, store, storage):
        trip = run(store.add_trip("T"))
        calls = storage.set_calls
        photos = run(store.add_photos(trip.id, [NewPhoto(f"u{i}") for i in range(5)]))
        assert [p.id for p in photos] == [1, 2, 3, 4, 5]
        assert storage.set_calls == calls + 1
        assert store.next_photo_id == 6

    def test_location_mapping_converted(self, store, storage):
        trip = run(store.add_trip("T"))
        photo = run(store.add_photo(trip.id, "u", location={"latitude": 1, "longitude": 2}))
        assert photo.location == Location(1.0, 2.0)
        doc = json.loads(storage.data[STORAGE_KEY])
        assert doc["photos"][0]["location"] == {"latitude": 1.0, "longitude": 2.0}

    @pytest.mark.parametrize("location", [{"lat": 1, "lng": 2}, (1, 2), "50,19"])
    def test_invalid_location_rejects_whole_batch(self, store, storage, location):
        trip = run(store.add_trip("T"))
        calls = storage.set_calls
        drafts = [NewPhoto("ok"), NewPhoto("bad", location=location)]
        with pytest.raises(ValidationError):
            run(store.add_photos(trip.id, drafts))
        assert store.photos == []
        assert store.next_photo_id == 1
        assert storage.set_calls == calls

        run(store.add_trip("after"))
        doc = json.loads(storage.data[STORAGE_KEY])
        assert [t["title"] for t in doc["trips"]] == ["T", "after"]

    def test_empty_batch_does_not_persist(self, store, storage):
        trip = run(store.add_trip("T"))
        calls = storage.set_calls
        assert run(store.add_photos(trip.id, [])) == []
        assert storage.set_calls == calls

    def test_delete_photo_idempotent(self, store):
        trip = run(store.add_trip("T"))
        photo = run(store.add_photo(trip.id, "u"))
        assert run(store.delete_photo(photo.id)) is True
        assert run(store.delete_photo(photo.id)) is False
        assert store.photos == []

    def test_list_photos_newest_first(self, store):
        trip = run(store.add_trip("T"))
        other = run(store.add_trip("O"))
        run(store.add_photo(trip.id, "first"))
        run(store.add_photo(other.id, "elsewhere"))
        run(store.add_photo(trip.id, "second"))
        assert [p.uri for p in store.list_photos_for_trip(trip.id)] == ["second", "first"]


class TestIds:
    def test_never_reused_after_delete(self, store):
        t1 = run(store.add_trip("1"))
        run(store.delete_trip(t1.id))
        t2 = run(store.add_trip("2"))
        assert t2.id == 2

        p1 = run(store.add_photo(t2.id, "a"))
        run(store.delete_photo(p1.id))
        p2 = run(store.add_photo(t2.id, "b"))
        assert p2.id == 2

    def test_trip_and_photo_sequences_independent(self, store):
        trip = run(store.add_trip("T"))
        photo = run(store.add_photo(trip.id, "u"))
        assert trip.id == 1
        assert photo.id == 1

    def test_counters_survive_reload(self, store, storage, clock):
        trip = run(store.add_trip("T"))
        run(store.add_photo(trip.id, "u"))
        run(store.delete_trip(trip.id))

        reopened = run(TripStore.open(storage, clock=clock))
        assert run(reopened.add_trip("N")).id == 2
        assert reopened.next_photo_id == 2


class TestReads:
    def test_list_trips_by_date(self, store):
        run(store.add_trip("old"))
        run(store.add_trip("mid"))
        run(store.add_trip("new"))
        assert [t.title for t in store.list_trips_by_date()] == ["new", "mid", "old"]
        assert [t.title for t in store.list_trips_by_date(descending=False)] == [
            "old",
            "mid",
            "new",
        ]

    def test_reads_return_copies(self, store):
        trip = run(store.add_trip("T"))
        listed = store.list_trips_by_date()
        listed[0].title = "mutated"
        listed.clear()
        assert store.get_trip(trip.id).title == "T"
        assert len(store.trips) == 1


class TestPersistence:
    def test_round_trip(self, store, storage, clock):
        run(_seed(store))
        run(store.delete_photo(1))
        run(store.save())

        fresh = TripStore(storage, clock=clock)
        assert run(fresh.load()) is True
        assert fresh.trips == store.trips
        assert fresh.photos == store.photos
        assert fresh.next_trip_id == store.next_trip_id
        assert fresh.next_photo_id == store.next_photo_id
        assert fresh.to_document() == store.to_document()

    def test_missing_key_gives_empty_store(self, storage):
        store = TripStore(storage)
        assert run(store.load()) is False
        assert store.trips == [] and store.photos == []
        assert store.next_trip_id == 1 and store.next_photo_id == 1

    @pytest.mark.parametrize("raw", ["{not json", "[1, 2]", "null", '"text"'])
    def test_corrupt_data_gives_empty_store(self, raw):
        storage = FlakyStorage()
        storage.data[STORAGE_KEY] = raw
        store = TripStore(storage)
        assert run(store.load()) is False
        assert store.trips == []
        assert store.next_trip_id == 1

    def test_load_replaces_existing_state(self, store, storage):
        run(store.add_trip("kept on disk"))
        run(store.save())
        store.apply_document({})
        assert store.trips == []
        assert run(store.load()) is True
        assert [t.title for t in store.trips] == ["kept on disk"]

    def test_coerces_fields(self):
        storage = FlakyStorage()
        storage.data[STORAGE_KEY] = json.dumps(
            {"trips": {"id": 1}, "photos": "nope", "nextTripId": -3, "nextPhotoId": "7"}
        )
        store = TripStore(storage)
        assert run(store.load()) is True
        assert store.trips == [] and store.photos == []
        assert store.next_trip_id == 1
        assert store.next_photo_id == 1

    def test_default_fills_and_skips_bad_rows(self):
        storage = FlakyStorage()
        storage.data[STORAGE_KEY] = json.dumps(
            {
                "trips": [{"id": 3, "title": "Legacy"}, {"title": "no id"}, "junk"],
                "photos": [
                    {"id": 9, "tripId": 3, "uri": "u", "date": "2023-07-01T10:00:00.000Z"},
                    {"id": 9, "tripId": 3, "uri": "duplicate"},
                ],
            }
        )
        store = TripStore(storage)
        run(store.load())

        (trip,) = store.trips
        assert trip.id == 3
        assert trip.description == ""
        assert trip.date is None
        (photo,) = store.photos
        assert photo.uri == "u"
        assert photo.location is None
        assert photo.date.year == 2023
        # counters default to 1 but never collide with loaded ids
        assert store.next_trip_id == 4
        assert store.next_photo_id == 10

    def test_read_failure_resets_and_raises(self, store, storage):
        run(store.add_trip("T"))
        storage.fail_get = True
        with pytest.raises(PersistenceError):
            run(store.load())
        assert store.trips == []
        assert store.next_trip_id == 1

    def test_write_failure_keeps_memory_change(self, store, storage):
        storage.fail_set = True
        with pytest.raises(PersistenceError):
            run(store.add_trip("unsaved"))
        assert [t.title for t in store.trips] == ["unsaved"]

        storage.fail_set = False
        run(store.save())
        assert "unsaved" in storage.data[STORAGE_KEY]

    def test_cascade_applied_even_if_persist_fails(self, store, storage):
        ids = run(_seed(store))
        storage.fail_set = True
        with pytest.raises(PersistenceError):
            run(store.delete_trip(ids["B"]))
        assert store.get_trip(ids["B"]) is None
        assert all(p.trip_id != ids["B"] for p in store.photos)


class TestOverlappingWrites:
    def test_cascade_visible_while_write_pending(self, clock):
        storage = SlowStorage()
        store = TripStore(storage, clock=clock)

        async def scenario():
            ids = await _seed(store)
            landed = len(storage.writes)
            deleting = asyncio.create_task(store.delete_trip(ids["B"]))
            await asyncio.sleep(0)

            # The delete is suspended inside its write.
            assert not deleting.done()
            assert len(storage.writes) == landed
            assert store.get_trip(ids["B"]) is None
            assert all(p.trip_id != ids["B"] for p in store.photos)
            assert [p.trip_id for p in store.photos] == [ids["C"]]

            adding = asyncio.create_task(store.add_trip("later"))
            await asyncio.gather(deleting, adding)
            return ids, landed

        ids, landed = run(scenario())

        assert len(storage.writes) == landed + 2
        doc = json.loads(storage.data[STORAGE_KEY])
        assert ids["B"] not in [t["id"] for t in doc["trips"]]
        assert "later" in [t["title"] for t in doc["trips"]]
        assert all(p["tripId"] != ids["B"] for p in doc["photos"])

    def test_slow_first_write_cannot_overwrite_newer_state(self, clock):
        # Without ordering, the fast second write would land first and the
        # slow first one would then overwrite it with an older snapshot.
        storage = SlowStorage(delays=[0.05, 0.0])
        store = TripStore(storage, clock=clock)

        async def scenario():
            first = asyncio.create_task(store.add_trip("first"))
            await asyncio.sleep(0)
            second = asyncio.create_task(store.add_trip("second"))
            await asyncio.gather(first, second)

        run(scenario())

        titles = [[t["title"] for t in json.loads(w)["trips"]] for w in storage.writes]
        assert titles[-1] == ["first", "second"]
        final = json.loads(storage.data[STORAGE_KEY])
        assert [t["title"] for t in final["trips"]] == ["first", "second"]
        assert final["nextTripId"] == 3


class TestClearAll:
    def test_resets_and_erases(self, store, storage):
        run(_seed(store))
        run(store.clear_all())
        assert store.trips == [] and store.photos == []
        assert store.next_trip_id == 1 and store.next_photo_id == 1
        assert STORAGE_KEY not in storage.data
        assert run(store.add_trip("again")).id == 1

    def test_remove_failure_reported(self, store, storage):
        run(store.add_trip("T"))
        storage.fail_remove = True
        with pytest.raises(PersistenceError):
            run(store.clear_all())
        assert store.trips == []


def test_open_loads_state(storage):
    seeded = TripStore(storage, clock=StepClock())
    run(seeded.add_trip("persisted"))
    opened = run(TripStore.open(storage))
    assert [t.title for t in opened.trips] == ["persisted"]
