import threading
from datetime import datetime, timedelta
from typing import Hashable, Iterable


class RuleFireState:
    """Last-fired time per rule, shared by every evaluation pass of one engine.

    Every read-modify-write happens under one lock; :meth:`claim` is the only
    way a rule gets recorded as fired. Not persisted.
    """

    def __init__(self) -> None:
        self._last_fired: dict[Hashable, datetime] = {}
        self._lock = threading.Lock()

    def last_fired(self, rule_id: Hashable) -> datetime | None:
        with self._lock:
            return self._last_fired.get(rule_id)

    def in_cooldown(self, rule_id: Hashable, cooldown: timedelta, now: datetime) -> bool:
        with self._lock:
            return self._in_cooldown(rule_id, cooldown, now)

    def claim(self, rule_id: Hashable, cooldown: timedelta, now: datetime) -> bool:
        """Atomically check the cooldown and record ``now`` as the fire time.

        Returns False if another caller fired the rule within ``cooldown``.
        """
        with self._lock:
            if self._in_cooldown(rule_id, cooldown, now):
                return False
            self._last_fired[rule_id] = now
            return True

    def prune(self, keep: Iterable[tuple[Hashable, timedelta]], now: datetime) -> int:
        """Drop entries whose rule is gone or whose cooldown has elapsed."""
        cooldowns = dict(keep)
        with self._lock:
            stale = [
                rule_id
                for rule_id in self._last_fired
                if rule_id not in cooldowns
                or not self._in_cooldown(rule_id, cooldowns[rule_id], now)
            ]
            for rule_id in stale:
                del self._last_fired[rule_id]
            return len(stale)

    def _in_cooldown(self, rule_id: Hashable, cooldown: timedelta, now: datetime) -> bool:
        last = self._last_fired.get(rule_id)
        return last is not None and now - last < cooldown

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_fired)
