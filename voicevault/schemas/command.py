"""Pydantic schemas for encrypted voice commands."""

from __future__ import annotations

import time
from enum import Enum
from typing import Annotated, Dict, Literal, Optional, Union

from pydantic import Field, field_validator

from voicevault.schemas.base import BaseSchema


# ---------- Ledger wire types ----------

class LedgerRecord(BaseSchema):
    """Record detail as returned by the ledger's read entry point."""
    name: str
    timestamp: int = Field(0, alias="timestampSeconds")
    creator: str
    public_value1: int = Field(0, alias="publicValue1")
    public_value2: int = Field(0, alias="publicValue2")
    is_verified: bool = Field(False, alias="isVerified")
    decrypted_value: int = Field(0, alias="decryptedValue")

    @field_validator("public_value1", "public_value2", "decrypted_value", "timestamp", mode="before")
    @classmethod
    def _coerce_missing_number(cls, value):
        # The ledger may return empty or null numeric fields for unset slots
        if value in (None, ""):
            return 0
        return value


class TransactionReceipt(BaseSchema):
    tx_hash: str
    status: Literal["confirmed", "failed"] = "confirmed"


class EncryptedInput(BaseSchema):
    ciphertext: str
    proof: str


class DecryptionBundle(BaseSchema):
    """Clear values for the requested handles plus the oracle's proof."""
    clear_values: Dict[str, int]
    encoded_clear_values: str
    proof: str


# ---------- Session types ----------

class Actor(BaseSchema):
    address: str
    connected: bool = True


class VoiceCommand(BaseSchema):
    """A ledger record as seen by the client.

    ``decrypted_value`` is only authoritative when ``is_verified`` is set.
    """
    id: str
    name: str
    ciphertext_ref: str
    timestamp: int
    creator: str
    public_value1: int = 0
    public_value2: int = 0
    is_verified: bool = False
    decrypted_value: int = 0

    @classmethod
    def from_record(cls, command_id: str, record: LedgerRecord) -> "VoiceCommand":
        # The ledger keys ciphertext handles by record id
        return cls(
            id=command_id,
            name=record.name,
            ciphertext_ref=command_id,
            timestamp=record.timestamp,
            creator=record.creator,
            public_value1=record.public_value1,
            public_value2=record.public_value2,
            is_verified=record.is_verified,
            decrypted_value=record.decrypted_value,
        )

    @property
    def authoritative_value(self) -> Optional[int]:
        return self.decrypted_value if self.is_verified else None


class CreateCommandRequest(BaseSchema):
    """Validated input for creating a command."""
    max_bits: int = 64
    name: str
    category_code: int
    value: int

    @field_validator("name", mode="before")
    @classmethod
    def _name_not_blank(cls, value):
        if value is None or not str(value).strip():
            raise ValueError("name is required")
        return str(value).strip()

    @field_validator("category_code", "value", mode="before")
    @classmethod
    def _strict_integer(cls, value, info):
        if isinstance(value, bool) or value is None:
            raise ValueError(f"{info.field_name} must be an integer")
        if isinstance(value, str):
            text = value.strip()
            if not text:
                raise ValueError(f"{info.field_name} is required")
            try:
                return int(text)
            except ValueError:
                raise ValueError(f"{info.field_name} must be an integer") from None
        if isinstance(value, int):
            return value
        raise ValueError(f"{info.field_name} must be an integer")

    @field_validator("value")
    @classmethod
    def _value_in_range(cls, value, info):
        max_bits = info.data.get("max_bits", 64) if info.data else 64
        if value < 0 or value >= 2 ** max_bits:
            raise ValueError(f"value must be between 0 and 2**{max_bits} - 1")
        return value


# ---------- Status ----------

class StatusPhase(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


class PendingStatus(BaseSchema):
    visible: bool = False
    phase: StatusPhase = StatusPhase.PENDING
    message: str = ""
    generation: int = 0


# ---------- History ----------

class CreateEntry(BaseSchema):
    kind: Literal["create"] = "create"
    name: str
    value: int
    timestamp: float = Field(default_factory=time.time)


class DecryptEntry(BaseSchema):
    kind: Literal["decrypt"] = "decrypt"
    name: str
    value: int
    timestamp: float = Field(default_factory=time.time)


HistoryEntry = Annotated[Union[CreateEntry, DecryptEntry], Field(discriminator="kind")]


# ---------- Stats ----------

class UsageStats(BaseSchema):
    total_commands: int = 0
    verified_commands: int = 0
    avg_response_time: float = 0.0
    active_users: int = 0
