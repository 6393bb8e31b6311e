"""
creature_evolution module: organism/events.py

Event sink for creature life events (births, deaths, damage, stats).
Creatures and the simulation get a sink injected; the UI reads EventLog.
"""

from __future__ import annotations
import logging
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Deque, List, Optional, Protocol, Sequence

import config

if TYPE_CHECKING:
    from organism.creature import Creature

logger = logging.getLogger(__name__)


class EventSink(Protocol):
    def on_birth(self, creature: "Creature", parents: Sequence["Creature"]) -> None: ...

    def on_death(self, creature: "Creature", killer: Optional["Creature"], cause: str) -> None: ...

    def on_damage(self, attacker: Optional["Creature"], victim: "Creature", amount: float) -> None: ...

    def on_stats(self, stats: Any) -> None: ...


class NullEventSink:
    def on_birth(self, creature, parents) -> None:
        pass

    def on_death(self, creature, killer, cause) -> None:
        pass

    def on_damage(self, attacker, victim, amount) -> None:
        pass

    def on_stats(self, stats) -> None:
        pass


@dataclass
class LogEntry:
    kind: str
    message: str
    sim_time: float = 0.0


class EventLog:
    """
    Keeps the last ``max_lines`` entries for display and mirrors
    each one to the logging module. Damage is too chatty to keep.
    """

    def __init__(self, max_lines: int = config.EVENT_LOG_LINES):
        self.entries: Deque[LogEntry] = deque(maxlen=max_lines)
        self.latest_stats: Any = None

    def add(self, kind: str, message: str, sim_time: float = 0.0) -> LogEntry:
        entry = LogEntry(kind=kind, message=message, sim_time=sim_time)
        self.entries.append(entry)
        logger.info("[%s] %s", kind, message)
        return entry

    def recent(self, n: int = 6) -> List[LogEntry]:
        if n <= 0:
            return []
        return list(self.entries)[-n:]

    def on_birth(self, creature, parents) -> None:
        ids = " + ".join(f"#{p.id}" for p in parents)
        self.add("birth", f"Creature #{creature.id} born to {ids}", creature.sim_time)

    def on_death(self, creature, killer, cause) -> None:
        if cause == "eaten" and killer is not None:
            msg = f"Creature #{creature.id} was eaten by #{killer.id}"
        elif killer is not None:
            msg = f"Creature #{creature.id} was killed by #{killer.id} ({cause})"
        else:
            msg = f"Creature #{creature.id} died of {cause}"
        self.add("death", msg, creature.sim_time)

    def on_damage(self, attacker, victim, amount) -> None:
        logger.debug(
            "Creature #%d took %.2f damage from %s",
            victim.id, amount, "?" if attacker is None else f"#{attacker.id}",
        )

    def on_stats(self, stats) -> None:
        self.latest_stats = stats
