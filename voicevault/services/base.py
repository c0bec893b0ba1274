"""Provider contracts for the ledger, FHE and identity collaborators."""

from __future__ import annotations

from typing import Awaitable, Callable, Optional, Protocol, Sequence

from voicevault.schemas.command import (
    Actor,
    DecryptionBundle,
    EncryptedInput,
    LedgerRecord,
    TransactionReceipt,
)

ProofCallback = Callable[[str, str], Awaitable[object]]


class Transaction(Protocol):
    """A submitted ledger transaction."""

    tx_hash: str

    async def wait(self) -> TransactionReceipt:
        """Resolve once the transaction is final."""


class LedgerReader(Protocol):
    provider_name: str

    async def list_identifiers(self) -> list[str]:
        """Return every record identifier in enumeration order."""

    async def get_record(self, command_id: str) -> LedgerRecord:
        """Return the public detail of one record."""

    async def get_ciphertext_handle(self, command_id: str) -> str:
        """Return the ciphertext handle stored for a record."""

    async def is_available(self) -> bool:
        """Return whether the contract reports itself available."""


class LedgerWriter(Protocol):
    provider_name: str

    async def create_record(
        self,
        command_id: str,
        name: str,
        ciphertext: str,
        proof: str,
        category_code: int,
        secondary_code: int,
        label: str,
    ) -> Transaction:
        """Submit a record creation transaction."""

    async def submit_decryption_proof(
        self, command_id: str, encoded_clear_values: str, proof: str
    ) -> Transaction:
        """Submit clear values and their proof to the verification entry point."""


class EncryptionService(Protocol):
    provider_name: str

    async def initialize(self) -> None:
        """Prepare the service for use. Called once per session."""

    async def encrypt(self, target_address: str, actor_address: str, value: int) -> EncryptedInput:
        """Encrypt a plaintext integer bound to a contract and an actor."""


class DecryptionOracle(Protocol):
    provider_name: str

    async def verify_decryption(
        self,
        handles: Sequence[str],
        target_address: str,
        on_proof_ready: Optional[ProofCallback] = None,
    ) -> DecryptionBundle:
        """Decrypt handles and return clear values with a correctness proof."""


class IdentityProvider(Protocol):
    def current_actor(self) -> Optional[Actor]:
        """Return the connected actor, or None."""
