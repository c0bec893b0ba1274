"""Provider registry: builds the service bundle a session runs against."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from voicevault.core.config import Settings, get_settings
from voicevault.services.base import (
    DecryptionOracle,
    EncryptionService,
    IdentityProvider,
    LedgerReader,
    LedgerWriter,
)
from voicevault.services.encryption import RelayerEncryptionService, StubEncryptionService
from voicevault.services.fhe_authority import LocalFheAuthority
from voicevault.services.ledger import GatewayLedger, InMemoryLedger
from voicevault.services.oracle import RelayerDecryptionOracle, StubDecryptionOracle


@dataclass
class ServiceBundle:
    reader: LedgerReader
    writer: LedgerWriter
    encryption: EncryptionService
    oracle: DecryptionOracle
    authority: Optional[LocalFheAuthority] = None


def get_ledger(
    settings: Settings,
    identity: Optional[IdentityProvider],
    authority: Optional[LocalFheAuthority],
):
    name = settings.ledger_provider.strip().lower()
    if name == "memory":
        if authority is None:
            raise ValueError("memory ledger requires the local FHE authority")
        return InMemoryLedger(authority, settings.contract_address, identity=identity)
    if name == "gateway":
        return GatewayLedger(
            base_url=settings.ledger_gateway_url,
            contract_address=settings.contract_address,
            api_token=settings.ledger_gateway_token,
            identity=identity,
            timeout=settings.ledger_timeout_seconds,
            poll_interval=settings.ledger_poll_interval_seconds,
        )
    raise ValueError(f"Unsupported ledger provider: {settings.ledger_provider}")


def get_encryption_service(settings: Settings, authority: Optional[LocalFheAuthority]) -> EncryptionService:
    name = settings.fhe_encryption_provider.strip().lower()
    if name == "stub":
        if authority is None:
            raise ValueError("stub encryption requires the local FHE authority")
        return StubEncryptionService(authority)
    if name == "relayer":
        return RelayerEncryptionService(settings.fhe_relayer_url, timeout=settings.fhe_relayer_timeout_seconds)
    raise ValueError(f"Unsupported encryption provider: {settings.fhe_encryption_provider}")


def get_decryption_oracle(settings: Settings, authority: Optional[LocalFheAuthority]) -> DecryptionOracle:
    name = settings.fhe_oracle_provider.strip().lower()
    if name == "stub":
        if authority is None:
            raise ValueError("stub oracle requires the local FHE authority")
        return StubDecryptionOracle(authority)
    if name == "relayer":
        return RelayerDecryptionOracle(settings.fhe_relayer_url, timeout=settings.fhe_relayer_timeout_seconds)
    raise ValueError(f"Unsupported oracle provider: {settings.fhe_oracle_provider}")


def build_services(
    settings: Optional[Settings] = None,
    identity: Optional[IdentityProvider] = None,
) -> ServiceBundle:
    settings = settings or get_settings()
    uses_stub = (
        settings.ledger_provider.strip().lower() == "memory"
        or settings.fhe_encryption_provider.strip().lower() == "stub"
        or settings.fhe_oracle_provider.strip().lower() == "stub"
    )
    authority = LocalFheAuthority() if uses_stub else None
    ledger = get_ledger(settings, identity, authority)
    return ServiceBundle(
        reader=ledger,
        writer=ledger,
        encryption=get_encryption_service(settings, authority),
        oracle=get_decryption_oracle(settings, authority),
        authority=authority,
    )


def list_supported_providers() -> dict[str, list[str]]:
    return {
        "ledger": ["memory", "gateway"],
        "encryption": ["stub", "relayer"],
        "oracle": ["stub", "relayer"],
    }
