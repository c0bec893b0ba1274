import asyncio

import pytest

from voicevault.core.config import Settings
from voicevault.schemas.command import TransactionReceipt
from voicevault.services.identity import StaticIdentity
from voicevault.services.registry import build_services
from voicevault.workflows.session import VoiceSession

ALICE = "0x00000000000000000000000000000000000a11ce"
BOB = "0x0000000000000000000000000000000000000b0b"
CONTRACT = "0x00000000000000000000000000000000000c0de0"


class FakeHandle:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Collects auto-clear callbacks instead of running them on a clock."""

    def __init__(self):
        self.handles = []

    def __call__(self, delay, callback):
        handle = FakeHandle(delay, callback)
        self.handles.append(handle)
        return handle

    def fire_all(self):
        for handle in list(self.handles):
            if not handle.cancelled:
                handle.callback()


class CountingEncryption:
    provider_name = "counting"

    def __init__(self, inner=None, error=None):
        self.inner = inner
        self.error = error
        self.calls = []

    async def initialize(self):
        return None

    async def encrypt(self, target_address, actor_address, value):
        self.calls.append((target_address, actor_address, value))
        if self.error is not None:
            raise self.error
        return await self.inner.encrypt(target_address, actor_address, value)


class CountingOracle:
    provider_name = "counting"

    def __init__(self, inner=None, gate=None):
        self.inner = inner
        self.gate = gate
        self.calls = []

    async def verify_decryption(self, handles, target_address, on_proof_ready=None):
        self.calls.append(list(handles))
        if self.gate is not None:
            await self.gate.wait()
        return await self.inner.verify_decryption(handles, target_address, on_proof_ready)


class DoneTransaction:
    def __init__(self, tx_hash="0x01", error=None):
        self.tx_hash = tx_hash
        self.error = error

    async def wait(self):
        if self.error is not None:
            raise self.error
        return TransactionReceipt(tx_hash=self.tx_hash)


@pytest.fixture
def settings():
    return Settings(_env_file=None, contract_address=CONTRACT)


@pytest.fixture
def identity():
    return StaticIdentity(ALICE)


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def services(settings, identity):
    return build_services(settings, identity)


@pytest.fixture
def session(services, identity, settings, scheduler):
    session = VoiceSession(services, identity, settings=settings, scheduler=scheduler)
    yield session
    session.close()


@pytest.fixture
def gate():
    return asyncio.Event()
