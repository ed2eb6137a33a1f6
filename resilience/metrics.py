"""In-process counters describing which tier satisfied each call."""

from __future__ import annotations

import threading
from collections import Counter
from typing import Dict

from models.context import DegradationLevel


class TierUsageCounters:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tiers: Counter = Counter()
        self._short_circuits: Counter = Counter()
        self._retries: Counter = Counter()
        self._exhausted: Counter = Counter()

    def record_tier(self, service_key: str, level: DegradationLevel) -> None:
        with self._lock:
            self._tiers[(service_key, level)] += 1

    def record_short_circuit(self, service_key: str) -> None:
        with self._lock:
            self._short_circuits[service_key] += 1

    def record_retry(self, service_key: str) -> None:
        with self._lock:
            self._retries[service_key] += 1

    def record_exhausted(self, service_key: str) -> None:
        with self._lock:
            self._exhausted[service_key] += 1

    def tier_count(self, service_key: str, level: DegradationLevel) -> int:
        with self._lock:
            return self._tiers[(service_key, level)]

    def short_circuit_count(self, service_key: str) -> int:
        with self._lock:
            return self._short_circuits[service_key]

    def snapshot(self) -> Dict[str, Dict[str, int]]:
        with self._lock:
            summary: Dict[str, Dict[str, int]] = {}
            for (service_key, level), count in self._tiers.items():
                summary.setdefault(service_key, {})[level.value] = count
            for service_key, count in self._short_circuits.items():
                summary.setdefault(service_key, {})["short_circuited"] = count
            for service_key, count in self._retries.items():
                summary.setdefault(service_key, {})["retries"] = count
            for service_key, count in self._exhausted.items():
                summary.setdefault(service_key, {})["exhausted"] = count
            return summary


__all__ = ["TierUsageCounters"]
