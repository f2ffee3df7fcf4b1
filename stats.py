import math
from typing import Sequence

from config import REPORT_PERCENTILES
from metrics import BenchmarkReport, RunStats


def calculate_percentile(samples: Sequence[float], percentile: float) -> float:
    """Nearest-rank percentile: the sample at rank ceil(p/100 * n) once sorted.

    Returns 0.0 for an empty sample set.
    """
    if not 0 < percentile <= 100:
        raise ValueError(f"Percentile must be in (0, 100], got {percentile}")
    if not samples:
        return 0.0
    sorted_samples = sorted(samples)
    index = math.ceil((percentile / 100.0) * len(sorted_samples)) - 1
    index = min(max(index, 0), len(sorted_samples) - 1)
    return sorted_samples[index]


def _ratio(numerator: float, denominator: float) -> float:
    # Empty runs and zero-length runs report 0 rather than NaN/inf
    if denominator <= 0:
        return 0.0
    return numerator / denominator


def build_report(stats: RunStats) -> BenchmarkReport:
    samples = sorted(stats.snapshot())
    if samples:
        avg_s = sum(samples) / len(samples)
        min_s, max_s = samples[0], samples[-1]
    else:
        avg_s = min_s = max_s = 0.0

    p50, p75, p90, p95, p99 = (calculate_percentile(samples, p) * 1000 for p in REPORT_PERCENTILES)

    return BenchmarkReport(
        total_requests=stats.total_requests,
        successful_requests=stats.successful_requests,
        failed_requests=stats.failed_requests,
        success_rate=_ratio(stats.successful_requests, stats.total_requests) * 100,
        total_duration_secs=stats.total_duration,
        avg_response_time_ms=avg_s * 1000,
        min_response_time_ms=min_s * 1000,
        max_response_time_ms=max_s * 1000,
        p50_ms=p50,
        p75_ms=p75,
        p90_ms=p90,
        p95_ms=p95,
        p99_ms=p99,
        qps=_ratio(stats.successful_requests, stats.total_duration),
    )
