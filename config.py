import logging

# General
LOG_LEVEL = logging.INFO  # DEBUG for more verbosity (or pass -v)
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(filename)s:%(lineno)d - %(message)s'
LOG_FILE = "httpbench.log"  # Created in the current working directory

# CLI defaults
DEFAULT_REQUESTS = 100
DEFAULT_CONCURRENCY = 10
DEFAULT_EXPORT_FORMAT = "json"
EXPORT_FORMATS = ("json", "csv")

# HTTP client
KEEPALIVE_IDLE_TIMEOUT_SECONDS = 90  # How long pooled idle connections are kept
REQUEST_TIMEOUT_SECONDS = None       # None: no per-request timeout beyond the transport's own
SUPPORTED_PROXY_SCHEMES = ("http://", "https://", "socks4://", "socks5://")

# Statistics
REPORT_PERCENTILES = (50, 75, 90, 95, 99)
