import logging
import threading
from typing import NamedTuple, Optional, List

logger = logging.getLogger(__name__)


class RequestResult(NamedTuple):
    success: bool
    status_code: Optional[int]  # None when the exchange never completed
    duration: float  # seconds
    error: Optional[str]


class BenchmarkReport(NamedTuple):
    total_requests: int
    successful_requests: int
    failed_requests: int
    success_rate: float  # percent
    total_duration_secs: float
    avg_response_time_ms: float
    min_response_time_ms: float
    max_response_time_ms: float
    p50_ms: float
    p75_ms: float
    p90_ms: float
    p95_ms: float
    p99_ms: float
    qps: float


class RunStats:
    """Running totals for one benchmark run.

    ``add_result`` is the only mutator and is serialized by a lock, so results
    can be fed from any number of completing tasks (or threads) without lost
    or double-applied updates. Latencies are kept for successful requests only.
    """

    def __init__(self):
        self.total_requests = 0
        self.successful_requests = 0
        self.failed_requests = 0
        self.total_duration = 0.0  # seconds, set once the run has drained
        self.response_times: List[float] = []
        self._lock = threading.Lock()

    def add_result(self, result: RequestResult):
        with self._lock:
            self.total_requests += 1
            if result.success:
                self.successful_requests += 1
                self.response_times.append(result.duration)
            else:
                self.failed_requests += 1
        if not result.success:
            logger.debug(f"Failed request: status={result.status_code}, error={result.error}")

    def snapshot(self) -> List[float]:
        with self._lock:
            return list(self.response_times)

    def __repr__(self):
        return (f"RunStats(total={self.total_requests}, ok={self.successful_requests}, "
                f"failed={self.failed_requests}, duration={self.total_duration:.3f}s)")
