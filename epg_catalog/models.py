"""
Canonical records shared across the catalog pipeline.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal


@dataclass(frozen=True, slots=True)
class Program:
    """A single scheduled broadcast.

    Adapters may emit candidates with ``start``/``end`` set to ``None``; only
    programs that went through the merger are guaranteed to carry both.
    """
    title: str
    start: datetime | None
    end: datetime | None = None
    description: str | None = None
    poster_url: str | None = None


@dataclass(frozen=True, slots=True)
class Channel:
    """A broadcast channel as represented in the unified catalog."""
    display_name: str
    identifier: str | None = None
    canonical_name: str = ""
    logo_url: str | None = None
    programs: tuple[Program, ...] = ()

    def __post_init__(self) -> None:
        if not self.canonical_name:
            object.__setattr__(self, "canonical_name", self.display_name)
        if not isinstance(self.programs, tuple):
            object.__setattr__(self, "programs", tuple(self.programs))


@dataclass(frozen=True, slots=True)
class ChannelListEntry:
    """One entry of a JSON catalog provider's channel list."""
    site_id: str
    name: str
    xmltv_id: str | None = None
    lang: str | None = None


@dataclass(slots=True)
class SourceResult:
    """Outcome of fetching and adapting one configured source."""
    index: int
    name: str
    sanitized_url: str
    started_at: datetime
    completed_at: datetime
    status: Literal["success", "failed"]
    channels: list[Channel] = field(default_factory=list)
    error: str | None = None

    @property
    def duration_seconds(self) -> float:
        return max(0.0, (self.completed_at - self.started_at).total_seconds())

    @property
    def programs_parsed(self) -> int:
        return sum(len(channel.programs) for channel in self.channels)

    def to_dict(self) -> dict:
        payload = {
            "source_index": self.index,
            "source_name": self.name,
            "sanitized_url": self.sanitized_url,
            "status": self.status,
            "channels_parsed": len(self.channels),
            "programs_parsed": self.programs_parsed,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "duration_seconds": self.duration_seconds,
        }
        if self.error:
            payload["error"] = self.error
        return payload


CatalogSnapshot = tuple[Channel, ...]


__all__ = ["Program", "Channel", "ChannelListEntry", "SourceResult", "CatalogSnapshot"]
