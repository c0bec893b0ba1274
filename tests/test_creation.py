import asyncio
import dataclasses

import pytest

from voicevault.core.errors import (
    ConnectivityRequired,
    EncryptionFailed,
    OperationInProgress,
    SubmissionFailed,
    SubmissionRejectedByUser,
    ValidationError,
)
from voicevault.schemas.command import CreateEntry, StatusPhase
from voicevault.workflows.creation import RecordIdFactory
from voicevault.workflows.session import VoiceSession

from conftest import ALICE, CONTRACT, CountingEncryption, DoneTransaction


@pytest.fixture
def encryption(services):
    return CountingEncryption(services.encryption)


@pytest.fixture
def counted_session(services, encryption, identity, settings, scheduler):
    bundle = dataclasses.replace(services, encryption=encryption)
    session = VoiceSession(bundle, identity, settings=settings, scheduler=scheduler)
    yield session
    session.close()


class RejectingWriter:
    provider_name = "rejecting"

    def __init__(self, error):
        self.error = error

    async def create_record(self, *args):
        return DoneTransaction(error=self.error)

    async def submit_decryption_proof(self, *args):
        return DoneTransaction(error=self.error)


class TestCreateValidation:

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "name,category,value",
        [
            ("", "1", "5"),
            ("   ", "1", "5"),
            ("Lights", "", "5"),
            ("Lights", "1", ""),
            ("Lights", "one", "5"),
            ("Lights", "1", "5.5"),
            ("Lights", "1", -1),
            ("Lights", "1", True),
            ("Lights", None, 5),
        ],
    )
    async def test_malformed_input_makes_no_external_call(self, counted_session, encryption, name, category, value):
        with pytest.raises(ValidationError):
            await counted_session.create(name, category, value)
        assert encryption.calls == []
        assert counted_session.creating is False
        assert counted_session.status.current.phase == StatusPhase.ERROR

    @pytest.mark.asyncio
    async def test_value_above_bit_width_is_rejected(self, counted_session, encryption):
        with pytest.raises(ValidationError):
            await counted_session.create("Lights", 1, 2 ** 64)
        assert encryption.calls == []

    @pytest.mark.asyncio
    async def test_disconnected_actor_is_rejected(self, counted_session, encryption, identity):
        identity.disconnect()
        with pytest.raises(ConnectivityRequired):
            await counted_session.create("Lights", 1, 5)
        assert encryption.calls == []
        assert counted_session.status.current.message == "Please connect wallet first"


class TestCreateFlow:

    @pytest.mark.asyncio
    async def test_create_records_and_refreshes(self, counted_session, encryption):
        command_id = await counted_session.create("Kitchen Lights", "3", "42")

        assert command_id.startswith("command-")
        assert encryption.calls == [(CONTRACT, ALICE, 42)]
        command = counted_session.store.get(command_id)
        assert command.name == "Kitchen Lights"
        assert command.public_value1 == 3
        assert command.public_value2 == 0
        assert command.creator == ALICE
        assert command.is_verified is False

        entries = counted_session.recent_history()
        assert len(entries) == 1
        assert isinstance(entries[0], CreateEntry)
        assert entries[0].value == 42

        assert counted_session.status.current.phase == StatusPhase.SUCCESS
        assert counted_session.status.current.message == "Voice command created successfully!"
        assert counted_session.creating is False

    @pytest.mark.asyncio
    async def test_create_from_draft_resets_form(self, counted_session):
        counted_session.draft.name = "Fan"
        counted_session.draft.command = "2"
        counted_session.draft.value = "7"

        command_id = await counted_session.create_from_draft()
        assert counted_session.store.get(command_id).name == "Fan"
        assert counted_session.draft.name == ""
        assert counted_session.draft.value == ""

    @pytest.mark.asyncio
    async def test_failed_create_keeps_draft(self, counted_session, encryption):
        encryption.error = RuntimeError("relayer offline")
        counted_session.draft.name = "Fan"
        counted_session.draft.command = "2"
        counted_session.draft.value = "7"

        with pytest.raises(EncryptionFailed):
            await counted_session.create_from_draft()
        assert counted_session.draft.name == "Fan"

    @pytest.mark.asyncio
    async def test_encryption_failure_leaves_store_unchanged(self, counted_session, encryption):
        await counted_session.create("Lights", 1, 1)
        before = counted_session.store.commands

        encryption.error = RuntimeError("relayer offline")
        with pytest.raises(EncryptionFailed):
            await counted_session.create("Fan", 2, 2)

        assert counted_session.status.current.phase == StatusPhase.ERROR
        assert counted_session.status.current.message == "Encryption failed: relayer offline"
        assert counted_session.creating is False
        assert counted_session.store.commands == before
        assert len(counted_session.history) == 1

    @pytest.mark.asyncio
    async def test_second_create_while_running_is_rejected(self, counted_session, gate):
        class SlowEncryption(CountingEncryption):
            async def encrypt(self, target_address, actor_address, value):
                await gate.wait()
                return await super().encrypt(target_address, actor_address, value)

        counted_session.creation._encryption = SlowEncryption(counted_session.services.encryption)
        first = asyncio.create_task(counted_session.create("Lights", 1, 1))
        await asyncio.sleep(0)
        assert counted_session.creating is True

        with pytest.raises(OperationInProgress):
            await counted_session.create("Fan", 2, 2)

        gate.set()
        await first
        assert counted_session.creating is False
        assert len(counted_session.store) == 1


class TestSubmissionErrors:

    @pytest.mark.asyncio
    async def test_user_rejection_is_classified(self, counted_session):
        counted_session.creation._writer = RejectingWriter(RuntimeError("user rejected transaction"))
        with pytest.raises(SubmissionRejectedByUser):
            await counted_session.create("Lights", 1, 1)
        assert counted_session.status.current.message == "Transaction rejected by user"
        assert counted_session.creating is False
        assert len(counted_session.history) == 0

    @pytest.mark.asyncio
    async def test_other_failures_are_submission_failed(self, counted_session):
        counted_session.creation._writer = RejectingWriter(RuntimeError("out of gas"))
        with pytest.raises(SubmissionFailed):
            await counted_session.create("Lights", 1, 1)
        assert counted_session.status.current.message == "Submission failed: out of gas"
        assert counted_session.creating is False


def test_record_ids_strictly_increase(monkeypatch):
    factory = RecordIdFactory("command-")
    monkeypatch.setattr("voicevault.workflows.creation.time.time", lambda: 1700000000.0)
    ids = [factory.next_id() for _ in range(3)]
    assert ids == ["command-1700000000000", "command-1700000000001", "command-1700000000002"]


class BrokenHistoryBackend:
    def append(self, entry):
        raise ConnectionError("redis down")

    def tail(self, limit):
        return []

    def count(self):
        return 0


@pytest.mark.asyncio
async def test_history_outage_does_not_fail_committed_create(services, identity, settings, scheduler):
    session = VoiceSession(
        services, identity, settings=settings, history_backend=BrokenHistoryBackend(), scheduler=scheduler
    )
    command_id = await session.create("Lamp", 1, 5)

    assert session.status.current.phase == StatusPhase.SUCCESS
    assert session.status.current.message == "Voice command created successfully!"
    assert session.store.get(command_id) is not None
    assert session.creating is False
    session.close()
