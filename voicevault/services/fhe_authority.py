"""In-process stand-in for the FHE key holder, used by the stub providers.

It keeps a handle -> plaintext table and signs proofs with an HMAC key so the
dev ledger can check what the dev oracle produced. It is not encryption.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from typing import Dict, List, Sequence

logger = logging.getLogger(__name__)


class LocalFheAuthority:
    def __init__(self, key: bytes | None = None) -> None:
        self._key = key or secrets.token_bytes(32)
        self._plaintexts: Dict[str, int] = {}

    def _sign(self, *parts: str) -> str:
        digest = hmac.new(self._key, ":".join(parts).encode("utf-8"), hashlib.sha256)
        return "0x" + digest.hexdigest()

    def register(self, target_address: str, actor_address: str, value: int) -> tuple[str, str]:
        """Store a plaintext and return (handle, input proof)."""
        handle = "0x" + secrets.token_hex(32)
        self._plaintexts[handle] = value
        proof = self._sign("input", handle, target_address.lower(), actor_address.lower())
        logger.debug(f"FHE authority: registered handle {handle[:10]}...")
        return handle, proof

    def verify_input(self, handle: str, proof: str, target_address: str, actor_address: str) -> bool:
        expected = self._sign("input", handle, target_address.lower(), actor_address.lower())
        return hmac.compare_digest(expected, proof)

    def decrypt(self, handles: Sequence[str]) -> List[int]:
        missing = [h for h in handles if h not in self._plaintexts]
        if missing:
            raise KeyError(f"Unknown ciphertext handle: {missing[0]}")
        return [self._plaintexts[h] for h in handles]

    def sign_decryption(self, handles: Sequence[str], encoded_clear_values: str) -> str:
        return self._sign("decrypt", ",".join(handles), encoded_clear_values)

    def verify_decryption(self, handles: Sequence[str], encoded_clear_values: str, proof: str) -> bool:
        expected = self.sign_decryption(handles, encoded_clear_values)
        return hmac.compare_digest(expected, proof)
