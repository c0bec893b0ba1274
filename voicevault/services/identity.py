"""Identity providers for the connected actor."""

from __future__ import annotations

from typing import Optional

from voicevault.schemas.command import Actor


class StaticIdentity:
    """Fixed actor address with a toggleable connection, for dev and tests."""

    def __init__(self, address: Optional[str] = None, connected: bool = True) -> None:
        self.address = address
        self.connected = connected and address is not None

    def connect(self, address: str) -> None:
        self.address = address
        self.connected = True

    def disconnect(self) -> None:
        self.connected = False

    def current_actor(self) -> Optional[Actor]:
        if not self.address:
            return None
        return Actor(address=self.address, connected=self.connected)
