import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

import httpx

import config
from benchmark_driver import RunConfig, run_benchmark
from errors import BenchmarkError, ConfigError
from report import export_report, print_config, print_report
from stats import build_report

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_RUN_FAILED = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else config.LOG_LEVEL,
        format=config.LOG_FORMAT,
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(config.LOG_FILE, mode='w')
        ]
    )
    # httpx logs every request at INFO, far too chatty under load
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logger.debug(f"Logging setup complete. Log file: {config.LOG_FILE}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="httpbench", description="HTTP load-generation benchmark")
    parser.add_argument("url", metavar="URL", help="Target URL")
    parser.add_argument("-n", "--requests", type=int, default=config.DEFAULT_REQUESTS,
                        help="Total number of requests (default: %(default)s)")
    parser.add_argument("-c", "--concurrency", type=int, default=config.DEFAULT_CONCURRENCY,
                        help="Maximum requests in flight (default: %(default)s)")
    parser.add_argument("-t", "--timelimit", type=float, default=None,
                        help="Run for this many seconds; overrides -n")
    parser.add_argument("-p", "--postfile", default=None,
                        help="File whose contents are sent as the POST body")
    parser.add_argument("-x", "--proxy", default=None,
                        help="Proxy URL (http://, https://, socks4://, socks5://)")
    parser.add_argument("-T", "--content-type", dest="content_type", default=None,
                        help="Content-Type header for POST requests")
    parser.add_argument("-H", "--header", dest="headers", action="append", default=[],
                        help="Custom header 'Key: Value' (repeatable)")
    parser.add_argument("-k", "--keepalive", action="store_true", help="Enable HTTP keep-alive")
    parser.add_argument("-o", "--output", default=None, help="Export the report to this file")
    parser.add_argument("-f", "--format", default=config.DEFAULT_EXPORT_FORMAT,
                        help="Export format: json or csv (default: %(default)s)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def validate_args(args: argparse.Namespace):
    try:
        target = httpx.URL(args.url)
    except httpx.InvalidURL as e:
        raise ConfigError(f"Invalid target URL {args.url!r}: {e}") from e
    if target.scheme not in ("http", "https") or not target.host:
        raise ConfigError(f"Target URL must be an absolute http:// or https:// URL, got {args.url!r}")
    if args.postfile and not os.path.isfile(args.postfile):
        raise ConfigError(f"POST data file does not exist: {args.postfile}")
    if args.output and args.format.lower() not in config.EXPORT_FORMATS:
        raise ConfigError(f"Unsupported export format: {args.format!r}. "
                          f"Use one of: {', '.join(config.EXPORT_FORMATS)}")


def read_post_body(path: Optional[str]) -> Optional[bytes]:
    if not path:
        return None
    try:
        with open(path, 'rb') as f:
            return f.read()
    except OSError as e:
        raise ConfigError(f"Failed to read POST data file {path}: {e}") from e


def run_config_from_args(args: argparse.Namespace) -> RunConfig:
    run_config = RunConfig(
        url=args.url,
        requests=args.requests,
        concurrency=args.concurrency,
        timelimit=args.timelimit,
        post_body=read_post_body(args.postfile),
        proxy=args.proxy,
        content_type=args.content_type,
        headers=list(args.headers),
        keepalive=args.keepalive,
    )
    run_config.validate()
    return run_config


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        validate_args(args)
        run_config = run_config_from_args(args)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR

    print_config(run_config)

    try:
        stats = asyncio.run(run_benchmark(run_config))
        report = build_report(stats)
        print_report(report)
        if args.output:
            print(f"\nExporting report to {args.output} ...")
            export_report(report, args.output, args.format)
            print(f"Report written to {args.output}")
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR
    except BenchmarkError as e:
        logger.error(f"Benchmark failed: {e}")
        return EXIT_RUN_FAILED
    except KeyboardInterrupt:
        logger.info("Benchmark interrupted by user (Ctrl+C).")
        return EXIT_INTERRUPTED

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
