"""Encoding for clear values submitted alongside a decryption proof.

Values are packed as consecutive 32-byte big-endian words, hex encoded with a
``0x`` prefix.
"""

from __future__ import annotations

from typing import Iterable, List

WORD_BYTES = 32


def encode_clear_values(values: Iterable[int]) -> str:
    payload = b""
    for value in values:
        if value < 0:
            raise ValueError("clear values must be non-negative")
        payload += int(value).to_bytes(WORD_BYTES, "big")
    return "0x" + payload.hex()


def decode_clear_values(encoded: str) -> List[int]:
    raw = bytes.fromhex(encoded[2:] if encoded.startswith("0x") else encoded)
    if len(raw) % WORD_BYTES:
        raise ValueError(f"encoded clear values must be a multiple of {WORD_BYTES} bytes")
    return [int.from_bytes(raw[i:i + WORD_BYTES], "big") for i in range(0, len(raw), WORD_BYTES)]
