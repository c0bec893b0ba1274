"""Usage statistics derived from the command store."""

from __future__ import annotations

from typing import Iterable

from voicevault.schemas.command import UsageStats, VoiceCommand


def compute_usage_stats(commands: Iterable[VoiceCommand]) -> UsageStats:
    commands = list(commands)
    if not commands:
        return UsageStats()
    return UsageStats(
        total_commands=len(commands),
        verified_commands=sum(1 for c in commands if c.is_verified),
        avg_response_time=sum(c.public_value1 for c in commands) / len(commands),
        active_users=len({c.creator for c in commands}),
    )
