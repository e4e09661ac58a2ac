import json
import os
import threading
from typing import Dict, List, Optional


# Keep the newest latencies only
MAX_LATENCY_SAMPLES = 1000


class MetricsTracker:
    """
    Request counters and latency percentiles, per endpoint and in total.

    Persisted to a JSON file when a path is given.
    """

    def __init__(self, path: Optional[str] = None):

        self._path = path
        self._lock = threading.Lock()

        self._metrics = {
            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,
            "total_latency": 0.0,
            "avg_latency": 0.0,
            "latencies": [],
            "endpoints": {},
        }

        self._load()

    def _load(self):

        if not self._path or not os.path.exists(self._path):
            return

        try:

            with open(self._path, "r") as f:
                data = json.load(f)

        except (OSError, ValueError):
            # Corrupt metrics restart from zero
            return

        self._metrics.update(data)

    def _save(self):

        if not self._path:
            return

        os.makedirs(os.path.dirname(self._path) or ".", exist_ok=True)

        with open(self._path, "w") as f:
            json.dump(self._metrics, f, indent=2)

    def _endpoint(self, path: str) -> Dict:

        return self._metrics["endpoints"].setdefault(
            path,
            {"requests": 0, "failures": 0},
        )

    def record_success(self, latency: float, path: str = "unknown"):

        with self._lock:

            self._metrics["total_requests"] += 1
            self._metrics["successful_requests"] += 1
            self._metrics["total_latency"] += latency

            self._metrics["avg_latency"] = (
                self._metrics["total_latency"]
                / self._metrics["successful_requests"]
            )

            latencies = self._metrics["latencies"]
            latencies.append(latency)
            del latencies[:-MAX_LATENCY_SAMPLES]

            self._endpoint(path)["requests"] += 1

            self._save()

    def record_failure(self, path: str = "unknown"):

        with self._lock:

            self._metrics["total_requests"] += 1
            self._metrics["failed_requests"] += 1

            endpoint = self._endpoint(path)
            endpoint["requests"] += 1
            endpoint["failures"] += 1

            self._save()

    def get_latency_percentile(self, percentile: float) -> float:

        latencies: List[float] = self._metrics.get("latencies", [])

        if not latencies:
            return 0.0

        sorted_latencies = sorted(latencies)

        index = int(len(sorted_latencies) * percentile / 100)
        index = min(index, len(sorted_latencies) - 1)

        return sorted_latencies[index]

    def get_metrics(self) -> Dict:

        with self._lock:

            summary = {
                key: value
                for key, value in self._metrics.items()
                if key != "latencies"
            }

        summary["p50_latency"] = self.get_latency_percentile(50)
        summary["p95_latency"] = self.get_latency_percentile(95)

        return summary
