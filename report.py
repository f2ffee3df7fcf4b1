import csv
import json
import logging
import os
import sys
from typing import Any, Dict

from config import EXPORT_FORMATS
from errors import ConfigError, ExportError
from metrics import BenchmarkReport

logger = logging.getLogger(__name__)

INT_FIELDS = ("total_requests", "successful_requests", "failed_requests")

# ANSI colours for section titles
BOLD = "\033[1m"
CYAN = "\033[96m"
YELLOW = "\033[93m"
RESET = "\033[0m"


def _color_enabled() -> bool:
    return sys.stdout.isatty()


def _title(text: str, color: str) -> str:
    if not _color_enabled():
        return text
    return f"{color}{text}{RESET}"


def print_config(run_config):
    print(_title("Test configuration:", YELLOW))
    print(f"  Target URL:     {run_config.url}")
    if run_config.time_limited:
        print(f"  Duration:       {run_config.timelimit:g} s")
    else:
        print(f"  Requests:       {run_config.requests}")
    print(f"  Concurrency:    {run_config.concurrency}")
    print(f"  KeepAlive:      {'enabled' if run_config.keepalive else 'disabled'}")
    if run_config.proxy:
        print(f"  Proxy:          {run_config.proxy}")
    if run_config.content_type:
        print(f"  Content-Type:   {run_config.content_type}")
    if run_config.headers:
        print(f"  Custom headers: {len(run_config.headers)}")
    print()


def print_report(report: BenchmarkReport):
    failure_rate = 100.0 - report.success_rate if report.total_requests else 0.0

    print("\n" + _title("=== Benchmark report ===", CYAN + BOLD) + "\n")
    print(_title("Requests:", YELLOW))
    print(f"  Total:          {report.total_requests}")
    print(f"  Successful:     {report.successful_requests} ({report.success_rate:.2f}%)")
    print(f"  Failed:         {report.failed_requests} ({failure_rate:.2f}%)")
    print()

    if not report.successful_requests:
        print(f"No successful requests in {report.total_duration_secs:.3f} s; no latency statistics.")
        return

    print(_title("Timing:", YELLOW))
    print(f"  Total time:     {report.total_duration_secs:.3f} s")
    print(f"  Average:        {report.avg_response_time_ms:.3f} ms")
    print(f"  Fastest:        {report.min_response_time_ms:.3f} ms")
    print(f"  Slowest:        {report.max_response_time_ms:.3f} ms")
    print()
    print(_title("Latency percentiles:", YELLOW))
    print(f"  P50 (median):   {report.p50_ms:.3f} ms")
    print(f"  P75:            {report.p75_ms:.3f} ms")
    print(f"  P90:            {report.p90_ms:.3f} ms")
    print(f"  P95:            {report.p95_ms:.3f} ms")
    print(f"  P99:            {report.p99_ms:.3f} ms")
    print()
    print(_title("Throughput:", YELLOW))
    print(f"  QPS:            {report.qps:.2f}")


def _normalize_format(fmt: str) -> str:
    fmt = (fmt or "").lower()
    if fmt not in EXPORT_FORMATS:
        raise ConfigError(f"Unsupported export format: {fmt!r}. Use one of: {', '.join(EXPORT_FORMATS)}")
    return fmt


def _from_mapping(row: Dict[str, Any]) -> BenchmarkReport:
    try:
        values = {
            field: int(row[field]) if field in INT_FIELDS else float(row[field])
            for field in BenchmarkReport._fields
        }
    except (KeyError, TypeError, ValueError) as e:
        raise ExportError(f"Malformed report record: {e}") from e
    return BenchmarkReport(**values)


def export_report(report: BenchmarkReport, path: str, fmt: str = "json"):
    fmt = _normalize_format(fmt)
    parent = os.path.dirname(os.path.abspath(path))
    try:
        if not os.path.exists(parent):
            os.makedirs(parent)
        with open(path, 'w', newline='') as f:
            if fmt == "json":
                json.dump(report._asdict(), f, indent=2)
            else:
                writer = csv.DictWriter(f, fieldnames=BenchmarkReport._fields)
                writer.writeheader()
                # repr keeps full float precision
                writer.writerow({k: repr(v) for k, v in report._asdict().items()})
    except OSError as e:
        raise ExportError(f"Failed to write {fmt.upper()} report to {path}: {e}") from e
    logger.info(f"Report exported to {path} ({fmt})")


def load_report(path: str, fmt: str = "json") -> BenchmarkReport:
    fmt = _normalize_format(fmt)
    try:
        with open(path, newline='') as f:
            if fmt == "json":
                row = json.load(f)
            else:
                rows = list(csv.DictReader(f))
                if len(rows) != 1:
                    raise ExportError(f"Expected exactly one record in {path}, found {len(rows)}")
                row = rows[0]
    except OSError as e:
        raise ExportError(f"Failed to read report from {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ExportError(f"Invalid JSON in {path}: {e}") from e
    return _from_mapping(row)
