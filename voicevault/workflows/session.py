"""
Session-scoped coordinator state.

One VoiceSession owns the command store, status channel, history and both
workflows for a connected session. Nothing here is module-level; discard the
session (after ``close()``) at the end of the session.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple, Union

from voicevault.core.config import Settings, get_settings
from voicevault.core.logger import setup_logging
from voicevault.schemas.command import Actor, HistoryEntry, UsageStats, VoiceCommand
from voicevault.services.base import IdentityProvider
from voicevault.services.command_store import CommandStore
from voicevault.services.history_store import HistoryBackend, HistoryShadow, RedisHistoryBackend
from voicevault.services.identity import StaticIdentity
from voicevault.services.registry import ServiceBundle, build_services
from voicevault.services.status_channel import Scheduler, StatusChannel
from voicevault.workflows.creation import CommandDraft, CreationCoordinator, RecordIdFactory
from voicevault.workflows.decryption import DecryptionCoordinator
from voicevault.workflows.stats import compute_usage_stats

logger = logging.getLogger(__name__)


class VoiceSession:
    def __init__(
        self,
        services: ServiceBundle,
        identity: IdentityProvider,
        settings: Optional[Settings] = None,
        history_backend: Optional[HistoryBackend] = None,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        settings = settings or get_settings()
        self.settings = settings
        self.services = services
        self.identity = identity
        self.contract_address = settings.contract_address

        self.status = StatusChannel(
            success_clear_seconds=settings.status_success_clear_seconds,
            error_clear_seconds=settings.status_error_clear_seconds,
            scheduler=scheduler,
        )
        self.store = CommandStore(services.reader, status=self.status)
        self.history = HistoryShadow(history_backend, display_limit=settings.history_display_limit)
        self.creation = CreationCoordinator(
            writer=services.writer,
            encryption=services.encryption,
            store=self.store,
            status=self.status,
            history=self.history,
            contract_address=self.contract_address,
            record_label=settings.record_label,
            id_factory=RecordIdFactory(settings.record_id_prefix),
            max_plaintext_bits=settings.max_plaintext_bits,
        )
        self.decryption = DecryptionCoordinator(
            reader=services.reader,
            writer=services.writer,
            oracle=services.oracle,
            store=self.store,
            status=self.status,
            history=self.history,
            contract_address=self.contract_address,
        )
        self.initialized = False

    @property
    def actor(self) -> Optional[Actor]:
        return self.identity.current_actor()

    @property
    def draft(self) -> CommandDraft:
        return self.creation.draft

    async def start(self) -> bool:
        """Initialize the encryption service and load the first snapshot."""
        actor = self.actor
        if actor is None or not actor.connected:
            logger.info("Session start deferred: no connected actor")
            return False
        try:
            await self.services.encryption.initialize()
        except Exception as exc:
            logger.error(f"FHE initialization failed: {exc}")
            self.status.error("FHEVM initialization failed")
            return False
        self.initialized = True
        await self.store.refresh()
        return True

    async def create(
        self,
        name: str,
        category_code: Union[int, str],
        plaintext_value: Union[int, str],
    ) -> str:
        return await self.creation.create(name, category_code, plaintext_value, self.actor)

    async def create_from_draft(self) -> str:
        return await self.creation.create_from_draft(self.actor)

    async def request_decryption(self, command_id: str) -> Optional[int]:
        return await self.decryption.request_decryption(command_id, self.actor)

    async def refresh(self) -> Optional[Tuple[VoiceCommand, ...]]:
        return await self.store.refresh()

    async def check_availability(self) -> bool:
        try:
            available = await self.services.reader.is_available()
        except Exception as exc:
            logger.warning(f"Availability check failed: {exc}")
            self.status.error("Availability check failed")
            return False
        if available:
            self.status.success("FHE System is available!")
        else:
            self.status.error("FHE System is unavailable")
        return bool(available)

    def stats(self) -> UsageStats:
        return compute_usage_stats(self.store.commands)

    def search(self, term: str) -> Tuple[VoiceCommand, ...]:
        return self.store.search(term)

    def recent_history(self, limit: Optional[int] = None) -> Sequence[HistoryEntry]:
        return self.history.recent(limit)

    @property
    def creating(self) -> bool:
        return self.creation.creating

    @property
    def is_refreshing(self) -> bool:
        return self.store.is_refreshing

    def close(self) -> None:
        self.status.close()


def open_session(
    settings: Optional[Settings] = None,
    identity: Optional[IdentityProvider] = None,
    scheduler: Optional[Scheduler] = None,
) -> VoiceSession:
    """Build a session from the configured providers."""
    settings = settings or get_settings()
    setup_logging(settings)
    identity = identity or StaticIdentity()
    services = build_services(settings, identity)

    history_backend: Optional[HistoryBackend] = None
    if settings.history_backend.strip().lower() == "redis":
        actor = identity.current_actor()
        history_backend = RedisHistoryBackend(
            actor.address if actor else None, redis_url=settings.redis_url
        )

    logger.info(
        f"Opening session: ledger={services.reader.provider_name} "
        f"encryption={services.encryption.provider_name} oracle={services.oracle.provider_name}"
    )
    return VoiceSession(
        services,
        identity,
        settings=settings,
        history_backend=history_backend,
        scheduler=scheduler,
    )
