from __future__ import annotations
from dataclasses import dataclass
from typing import List
from .config import EPHEMERAL_FLOOR, SCRIPT_INTERPRETERS
from .models import ConnSummary, ProcInfo

@dataclass(frozen=True)
class DirectionPolicy:
    """Guess who opened a connection from the local port.

    Ports above the floor are taken as ephemeral, i.e. this host dialed out.
    Linux hands out 32768-60999 by default; other systems differ.
    """
    ephemeral_floor: int = EPHEMERAL_FLOOR

    def is_outgoing(self, local_port: int) -> bool:
        return local_port > self.ephemeral_floor

def sort_summaries(summaries: List[ConnSummary]) -> List[ConnSummary]:
    # two stable passes; the last one dominates
    out = sorted(summaries, key=lambda s: 0 if s.is_listening else 1)
    out.sort(key=lambda s: 0 if s.is_outgoing else 1)
    return out

def display_executable(proc: ProcInfo) -> str:
    if proc.args:
        suffixes = SCRIPT_INTERPRETERS.get(proc.args[0])
        if suffixes:
            for a in proc.args[1:]:
                if a.endswith(suffixes):
                    return a
        if proc.args[0]:
            return proc.args[0]
    return proc.name
