# arexx_tap/runtime/state.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from arexx_tap.core.dispatch import SinkStats


@dataclass(frozen=True)
class PipelineCounters:
    """
    Read-loop counters since session start.
    """
    polls: int = 0
    idle_polls: int = 0
    frames: int = 0
    ignored_frames: int = 0
    tuples: int = 0
    readings: int = 0
    malformed_frames: int = 0
    empty_slots: int = 0


@dataclass(frozen=True)
class SessionStatus:
    """
    A snapshot of the full session status, safe to share across threads.
    """
    connected: bool
    transport: str
    counters: PipelineCounters
    unregistered_ids: Tuple[int, ...] = ()
    sinks: Tuple[SinkStats, ...] = ()
    last_error: Optional[str] = None
