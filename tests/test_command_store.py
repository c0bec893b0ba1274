import asyncio

import pytest

from voicevault.schemas.command import LedgerRecord, StatusPhase
from voicevault.services.command_store import CommandStore
from voicevault.services.status_channel import StatusChannel

from conftest import ALICE, BOB, FakeScheduler


class FakeReader:
    provider_name = "fake"

    def __init__(self):
        self.records = {}
        self.broken = set()
        self.list_error = None
        self.gate = None

    def add(self, command_id, name, creator=ALICE, public_value1=0, verified=False, value=0):
        self.records[command_id] = LedgerRecord(
            name=name,
            timestamp=1700000000,
            creator=creator,
            public_value1=public_value1,
            is_verified=verified,
            decrypted_value=value,
        )

    async def list_identifiers(self):
        if self.list_error is not None:
            raise self.list_error
        if self.gate is not None:
            await self.gate.wait()
        return list(self.records)

    async def get_record(self, command_id):
        if command_id in self.broken:
            raise RuntimeError("execution reverted")
        return self.records[command_id]

    async def get_ciphertext_handle(self, command_id):
        return f"0xhandle-{command_id}"

    async def is_available(self):
        return True


@pytest.fixture
def reader():
    return FakeReader()


@pytest.fixture
def status():
    return StatusChannel(scheduler=FakeScheduler())


@pytest.mark.asyncio
async def test_refresh_loads_in_enumeration_order(reader, status):
    reader.add("command-2", "fan")
    reader.add("command-1", "lights")
    store = CommandStore(reader, status)

    snapshot = await store.refresh()
    assert [c.id for c in snapshot] == ["command-2", "command-1"]
    assert store.get("command-1").name == "lights"
    assert store.get("missing") is None
    assert store.is_refreshing is False


@pytest.mark.asyncio
async def test_partial_failure_skips_record_without_status(reader, status):
    reader.add("command-1", "lights")
    reader.add("command-2", "fan")
    reader.add("command-3", "heater")
    reader.broken.add("command-2")
    store = CommandStore(reader, status)

    snapshot = await store.refresh()
    assert [c.id for c in snapshot] == ["command-1", "command-3"]
    assert [f.command_id for f in store.last_failures] == ["command-2"]
    assert status.current.visible is False


@pytest.mark.asyncio
async def test_listing_failure_keeps_previous_snapshot(reader, status):
    reader.add("command-1", "lights")
    store = CommandStore(reader, status)
    await store.refresh()

    reader.list_error = RuntimeError("rpc down")
    assert await store.refresh() is None
    assert [c.id for c in store.commands] == ["command-1"]
    assert status.current.phase == StatusPhase.ERROR
    assert status.current.message == "Failed to load data"
    assert store.is_refreshing is False


@pytest.mark.asyncio
async def test_mutation_between_refreshes_is_reflected_once(reader, status):
    reader.add("command-1", "lights")
    store = CommandStore(reader, status)
    await store.refresh()
    assert store.get("command-1").is_verified is False

    reader.add("command-1", "lights", verified=True, value=5)
    reader.add("command-2", "fan")
    snapshot = await store.refresh()

    assert len(snapshot) == 2
    assert [c.id for c in snapshot].count("command-1") == 1
    assert store.get("command-1").is_verified is True
    assert store.get("command-1").authoritative_value == 5


@pytest.mark.asyncio
async def test_refresh_while_refreshing_is_rejected(reader, status):
    reader.add("command-1", "lights")
    reader.gate = asyncio.Event()
    store = CommandStore(reader, status)

    first = asyncio.create_task(store.refresh())
    await asyncio.sleep(0)
    assert store.is_refreshing is True
    assert await store.refresh() is None

    reader.gate.set()
    snapshot = await first
    assert len(snapshot) == 1
    assert store.is_refreshing is False


@pytest.mark.asyncio
async def test_search_matches_name_or_creator(reader, status):
    reader.add("command-1", "Kitchen Lights", creator=ALICE)
    reader.add("command-2", "Garage Door", creator=BOB)
    store = CommandStore(reader, status)
    await store.refresh()

    assert [c.id for c in store.search("lights")] == ["command-1"]
    assert [c.id for c in store.search("B0B")] == ["command-2"]
    assert len(store.search("  ")) == 2
    assert store.search("thermostat") == ()
