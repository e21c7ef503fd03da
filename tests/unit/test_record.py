from __future__ import annotations

import re
from datetime import datetime, timezone

import pytest
from redis.exceptions import ResponseError

from redmodel.domain.errors import ConfigurationError, ValidationFailed
from redmodel.odm.events import DESTROY_AFTER, SAVE_AFTER, SAVE_BEFORE
from redmodel.odm.record import Record
from redmodel.odm.record_set import RecordSet
from redmodel.utils.codec import TYPES_FIELD

from tests.fakes import TEST_ROOT, FakeRedis


def test_record_requires_a_client() -> None:
    with pytest.raises(ConfigurationError):
        Record({"name": "apple"})


def test_standalone_record_defaults() -> None:
    record = Record({"name": "apple"}, client=FakeRedis(), root=TEST_ROOT)

    assert record.namespace == "generic"
    assert record.name == "generic"
    assert record.key == f"{TEST_ROOT}:generic:{record.id}"
    assert len(record.id) == 16


@pytest.mark.asyncio
async def test_save_then_load_on_fresh_record_round_trips(client: FakeRedis) -> None:
    props = {
        "name": "apple",
        "calories": 90,
        "ripe": True,
        "picked": datetime(2024, 5, 1, tzinfo=timezone.utc),
        "origin": {"country": "PT", "tags": ["red", "sweet"]},
        "sku": re.compile(r"APL-\d+"),
        "note": None,
    }
    saved = await Record(props, client=client, namespace="food", id="a1", root=TEST_ROOT).save()

    fresh = await Record(client=client, namespace="food", id="a1", root=TEST_ROOT).load()

    assert fresh is not None
    assert fresh.properties["sku"].pattern == r"APL-\d+"
    assert {k: v for k, v in fresh.properties.items() if k != "sku"} == {
        k: v for k, v in props.items() if k != "sku"
    }
    assert fresh.properties.keys() == saved.properties.keys()


@pytest.mark.asyncio
async def test_save_writes_and_reads_back_in_one_transaction(client: FakeRedis) -> None:
    await Record({"name": "apple"}, client=client, namespace="food", id="a1", root=TEST_ROOT).save()

    assert client.calls[:5] == ["exec", "hgetall", "delete", "hset", "hgetall"]
    stored = client.hashes[f"{TEST_ROOT}:food:a1"]
    assert stored["name"] == "apple"
    assert TYPES_FIELD in stored


@pytest.mark.asyncio
async def test_properties_after_save_are_the_read_back(client: FakeRedis) -> None:
    record = Record({"name": "apple", "calories": 90}, client=client, namespace="food", root=TEST_ROOT)
    original = record.properties

    await record.save()

    assert record.properties == {"name": "apple", "calories": 90}
    assert record.properties is not original
    assert TYPES_FIELD not in record.properties


@pytest.mark.asyncio
async def test_resave_drops_removed_fields(client: FakeRedis) -> None:
    record = await Record(
        {"name": "apple", "calories": 90}, client=client, namespace="food", id="a1", root=TEST_ROOT
    ).save()
    del record.properties["calories"]

    await record.save()

    assert "calories" not in client.hashes[f"{TEST_ROOT}:food:a1"]
    assert record.previous == {"name": "apple", "calories": 90}


@pytest.mark.asyncio
async def test_invalid_record_raises_without_store_calls(food: RecordSet, client: FakeRedis) -> None:
    record = food.new({"calories": "lots"})

    with pytest.raises(ValidationFailed) as excinfo:
        await record.save()

    assert {error.field for error in excinfo.value.errors} == {"name", "calories"}
    assert client.calls == []


@pytest.mark.asyncio
async def test_before_save_listener_can_stamp_fields(food: RecordSet) -> None:
    food.on(SAVE_BEFORE, lambda record: record.properties.setdefault("group", "misc"))

    record = await food.create({"name": "bread"})

    assert record.properties["group"] == "misc"
    assert (await food.get(record.id)).properties["group"] == "misc"


@pytest.mark.asyncio
async def test_before_save_error_aborts_without_writes(food: RecordSet, client: FakeRedis) -> None:
    def reject(record: Record) -> None:
        raise PermissionError("read only")

    food.on(SAVE_BEFORE, reject)

    with pytest.raises(PermissionError):
        await food.create({"name": "bread"})
    assert client.calls == []


@pytest.mark.asyncio
async def test_store_error_is_raised_once_and_skips_after_hooks(food: RecordSet, client: FakeRedis) -> None:
    after = []
    food.on(SAVE_AFTER, after.append)
    client.fail_on.add("hset")

    with pytest.raises(ResponseError):
        await food.create({"name": "bread"})
    assert after == []


@pytest.mark.asyncio
async def test_after_save_listener_failure_does_not_fail_save(food: RecordSet) -> None:
    errors = []

    def broken(record: Record) -> None:
        raise RuntimeError("listener bug")

    food.on(SAVE_AFTER, broken)
    food.on("error", lambda exc, record: errors.append(exc))

    record = await food.create({"name": "bread"})

    assert await food.get(record.id) is not None
    assert [str(exc) for exc in errors] == ["listener bug"]


@pytest.mark.asyncio
async def test_load_missing_record_returns_none(client: FakeRedis) -> None:
    assert await Record(client=client, namespace="food", id="nope", root=TEST_ROOT).load() is None


@pytest.mark.asyncio
async def test_destroy_removes_hash_and_notifies(food: RecordSet, client: FakeRedis) -> None:
    destroyed = []
    food.on(DESTROY_AFTER, destroyed.append)
    record = await food.create({"name": "apple", "group": "fruit"})

    await record.destroy()

    assert record.key not in client.hashes
    assert destroyed == [record]
    assert record.previous == {"name": "apple", "group": "fruit"}


def test_copy_is_detached(food: RecordSet) -> None:
    record = food.new({"name": "apple", "origin": {"country": "PT"}})

    clone = record.copy()
    clone.properties["origin"]["country"] = "ES"

    assert clone.id == record.id
    assert record.properties["origin"]["country"] == "PT"
