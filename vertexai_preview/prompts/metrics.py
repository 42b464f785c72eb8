# Copyright 2025 Cisco Systems, Inc. and its affiliates
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0

"""In-process counters for prompt service operations."""

import threading
import time
from datetime import datetime, timezone
from typing import Any, Dict

from .models import MetricsSnapshot

OPERATION_COUNTERS = (
    "prompts_created",
    "prompts_retrieved",
    "prompts_updated",
    "prompts_deleted",
    "prompts_listed",
    "templates_applied",
    "variables_applied",
    "versions_created",
    "versions_restored",
)
ERROR_COUNTERS = ("validation_errors", "template_errors", "cloud_errors")
ERROR_KINDS = {"validation": "validation_errors", "template": "template_errors", "cloud": "cloud_errors"}

# Counters that make up the operations-per-second rate.
THROUGHPUT_COUNTERS = (
    "prompts_created",
    "prompts_retrieved",
    "prompts_updated",
    "prompts_deleted",
    "templates_applied",
    "versions_created",
    "versions_restored",
)


class MetricsCollector:
    """
    Thread-safe counters, latency totals and cache statistics.

    Latencies are tracked in seconds.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._start_time = time.monotonic()
        self._reset_counters()

    def _reset_counters(self):
        self._counters = dict.fromkeys(OPERATION_COUNTERS + ERROR_COUNTERS, 0)
        self._total_latency = 0.0
        self._operation_count = 0
        self._cache_hits = 0
        self._cache_misses = 0
        self._last_reset = time.monotonic()

    def increment(self, counter: str, count: int = 1):
        with self._lock:
            if counter not in self._counters:
                raise KeyError(f"unknown counter: {counter}")
            self._counters[counter] += count

    def increment_prompt_created(self):
        self.increment("prompts_created")

    def increment_prompt_retrieved(self):
        self.increment("prompts_retrieved")

    def increment_prompt_updated(self):
        self.increment("prompts_updated")

    def increment_prompt_deleted(self):
        self.increment("prompts_deleted")

    def increment_prompts_listed(self, count: int):
        self.increment("prompts_listed", count)

    def increment_template_applied(self):
        self.increment("templates_applied")

    def increment_variables_applied(self, count: int):
        self.increment("variables_applied", count)

    def increment_version_created(self):
        self.increment("versions_created")

    def increment_version_restored(self):
        self.increment("versions_restored")

    def increment_error(self, kind: str):
        """Count an error of kind ``validation``, ``template`` or ``cloud``. Other kinds are ignored."""
        counter = ERROR_KINDS.get(kind)
        if counter:
            self.increment(counter)

    def increment_cache_hit(self):
        with self._lock:
            self._cache_hits += 1

    def increment_cache_miss(self):
        with self._lock:
            self._cache_misses += 1

    def record_operation_latency(self, seconds: float):
        with self._lock:
            self._total_latency += seconds
            self._operation_count += 1

    def get_average_latency(self) -> float:
        with self._lock:
            if self._operation_count == 0:
                return 0.0
            return self._total_latency / self._operation_count

    def get_cache_hit_ratio(self) -> float:
        with self._lock:
            total = self._cache_hits + self._cache_misses
            if total == 0:
                return 0.0
            return self._cache_hits / total

    def get_operation_metrics(self) -> Dict[str, int]:
        with self._lock:
            return {name: self._counters[name] for name in OPERATION_COUNTERS}

    def get_error_metrics(self) -> Dict[str, int]:
        with self._lock:
            return {name: self._counters[name] for name in ERROR_COUNTERS}

    def get_performance_metrics(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "total_operations": self._operation_count,
                "total_latency_ms": self._total_latency * 1000,
                "average_latency_ms": self.get_average_latency() * 1000,
                "cache_hits": self._cache_hits,
                "cache_misses": self._cache_misses,
                "cache_hit_ratio": self.get_cache_hit_ratio(),
            }

    def get_all_metrics(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "uptime_seconds": self.get_uptime(),
                "time_since_reset_seconds": self.get_time_since_reset(),
                "operations": self.get_operation_metrics(),
                "errors": self.get_error_metrics(),
                "performance": self.get_performance_metrics(),
            }

    def reset(self):
        """Zero every counter. Uptime keeps counting from construction."""
        with self._lock:
            self._reset_counters()

    def get_uptime(self) -> float:
        return time.monotonic() - self._start_time

    def get_time_since_reset(self) -> float:
        with self._lock:
            return time.monotonic() - self._last_reset

    def get_operations_per_second(self) -> float:
        with self._lock:
            elapsed = time.monotonic() - self._last_reset
            if elapsed <= 0:
                return 0.0
            return sum(self._counters[name] for name in THROUGHPUT_COUNTERS) / elapsed

    def get_error_rate(self) -> float:
        """Errors as a percentage of tracked operations."""
        with self._lock:
            if self._operation_count == 0:
                return 0.0
            errors = sum(self._counters[name] for name in ERROR_COUNTERS)
            return errors / self._operation_count * 100.0

    def get_snapshot(self) -> MetricsSnapshot:
        return MetricsSnapshot(
            timestamp=datetime.now(timezone.utc),
            uptime=self.get_uptime(),
            metrics=self.get_all_metrics(),
        )

    def start_operation(self, operation: str) -> "PerformanceTracker":
        return PerformanceTracker(self, operation)


class PerformanceTracker:
    """
    Measures one operation. Only the first ``finish`` call is recorded.

    Can be used as a context manager; an exception escaping the block is not counted as an error
    kind, callers report the kind explicitly with ``finish_with_error``.
    """

    def __init__(self, metrics: MetricsCollector, operation: str):
        self.metrics = metrics
        self.operation = operation
        self._start = time.monotonic()
        self._finished = False

    def _record(self) -> bool:
        if self._finished:
            return False
        self._finished = True
        self.metrics.record_operation_latency(time.monotonic() - self._start)
        return True

    def finish(self):
        self._record()

    def finish_with_error(self, kind: str):
        if self._record():
            self.metrics.increment_error(kind)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.finish()
        return False
