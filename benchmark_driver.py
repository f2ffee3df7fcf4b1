import asyncio
import logging
import time
from typing import Callable, List, NamedTuple, Optional, Sequence

import httpx

from client import ClientConfig, build_client, parse_headers, validate_proxy_url
from errors import ConfigError, RunAbortedError
from executor import execute_request
from gate import ConcurrencyGate, Permit
from metrics import RunStats

logger = logging.getLogger(__name__)

# (requests launched so far, seconds since dispatch started) -> keep launching?
ContinuePredicate = Callable[[int, float], bool]


class RunConfig(NamedTuple):
    url: str
    requests: int = 100  # ignored when timelimit is set
    concurrency: int = 10
    timelimit: Optional[float] = None  # seconds
    post_body: Optional[bytes] = None
    proxy: Optional[str] = None
    content_type: Optional[str] = None
    headers: Sequence[str] = ()  # "Key: Value" strings
    keepalive: bool = False

    @property
    def time_limited(self) -> bool:
        return self.timelimit is not None

    def validate(self):
        if self.concurrency < 1:
            raise ConfigError(f"Concurrency must be at least 1, got {self.concurrency}")
        if self.time_limited:
            if self.timelimit <= 0:
                raise ConfigError(f"Time limit must be positive, got {self.timelimit}")
        elif self.requests < 1:
            raise ConfigError(f"Number of requests must be at least 1, got {self.requests}")
        if self.proxy:
            validate_proxy_url(self.proxy)
        parse_headers(self.headers)


def count_limit(total_requests: int) -> ContinuePredicate:
    return lambda launched, elapsed: launched < total_requests


def time_limit(seconds: float) -> ContinuePredicate:
    return lambda launched, elapsed: elapsed < seconds


async def dispatch(client: httpx.AsyncClient, run_config: RunConfig,
                   should_continue: ContinuePredicate,
                   stats: Optional[RunStats] = None) -> RunStats:
    """Launch requests under the concurrency cap until ``should_continue`` says stop.

    Launching is sequential, execution is concurrent. Once the predicate turns
    false no new request starts, but every launched one runs to completion
    before the stats are finalized. HTTP failures are just failed results; an
    exception escaping a request task aborts the whole run.
    """
    gate = ConcurrencyGate(run_config.concurrency)
    stats = stats if stats is not None else RunStats()
    tasks: List[asyncio.Task] = []
    task_failures: List[BaseException] = []

    async def run_one(permit: Permit):
        try:
            result = await execute_request(client, run_config.url,
                                           run_config.post_body, run_config.content_type)
            stats.add_result(result)
        except Exception as e:
            task_failures.append(e)
            gate.close(f"request task failed: {type(e).__name__}: {e}")
            raise
        finally:
            permit.release()

    start_time = time.perf_counter()
    try:
        while should_continue(len(tasks), time.perf_counter() - start_time):
            permit = await gate.acquire()
            tasks.append(asyncio.create_task(run_one(permit), name=f"request-{len(tasks)}"))

        logger.info(f"Dispatch stopped after launching {len(tasks)} requests "
                    f"({gate.in_flight} still in flight). Draining...")
        await asyncio.gather(*tasks)
    except Exception as e:
        cause = task_failures[0] if task_failures else e
        pending = [t for t in tasks if not t.done()]
        logger.error(f"Run aborted: {type(cause).__name__}: {cause}. Cancelling {len(pending)} pending requests.")
        for task in pending:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if isinstance(cause, RunAbortedError):
            raise cause
        raise RunAbortedError(f"Request task failed: {type(cause).__name__}: {cause}") from cause

    stats.total_duration = time.perf_counter() - start_time
    logger.info(f"Run finished in {stats.total_duration:.3f}s: {stats.total_requests} requests, "
                f"{stats.successful_requests} ok, {stats.failed_requests} failed")
    return stats


async def run_benchmark(run_config: RunConfig) -> RunStats:
    run_config.validate()

    client = build_client(ClientConfig(
        keepalive=run_config.keepalive,
        proxy=run_config.proxy,
        headers=parse_headers(run_config.headers),
        concurrency=run_config.concurrency,
    ))

    if run_config.time_limited:
        logger.info(f"Starting benchmark against {run_config.url}: {run_config.timelimit}s, "
                    f"concurrency {run_config.concurrency}")
        predicate = time_limit(run_config.timelimit)
    else:
        logger.info(f"Starting benchmark against {run_config.url}: {run_config.requests} requests, "
                    f"concurrency {run_config.concurrency}")
        predicate = count_limit(run_config.requests)

    async with client:
        return await dispatch(client, run_config, predicate)
