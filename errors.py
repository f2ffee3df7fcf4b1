"""Exception taxonomy for a benchmark run.

Per-request HTTP and network failures are never raised: they are recorded as
failed ``RequestResult`` values. Only configuration problems and failures of
the run machinery itself surface as exceptions.
"""


class BenchmarkError(Exception):
    pass


class ConfigError(BenchmarkError):
    """Invalid run configuration, detected before any request is sent."""


class RunAbortedError(BenchmarkError):
    """The dispatch machinery failed; the whole run is void."""


class GateClosedError(RunAbortedError):
    """A permit was requested from a gate that has been closed."""


class ExportError(BenchmarkError):
    """Writing or reading a report file failed."""
