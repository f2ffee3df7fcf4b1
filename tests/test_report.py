import pytest
import csv
import json
import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from benchmark_driver import RunConfig
from errors import ConfigError, ExportError
from metrics import BenchmarkReport
import report
from report import export_report, load_report, print_config, print_report

SAMPLE_REPORT = BenchmarkReport(
    total_requests=50, successful_requests=48, failed_requests=2,
    success_rate=96.0, total_duration_secs=0.123456789,
    avg_response_time_ms=10.5, min_response_time_ms=10.01, max_response_time_ms=14.333333333333334,
    p50_ms=10.2, p75_ms=10.7, p90_ms=11.9, p95_ms=12.4, p99_ms=14.1, qps=388.8000000000001,
)

EMPTY_REPORT = BenchmarkReport(20, 0, 20, 0.0, 0.05, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0)


class TestExport:
    @pytest.mark.parametrize("fmt", ["json", "csv", "JSON", "Csv"])
    def test_round_trip(self, tmp_path, fmt):
        path = str(tmp_path / f"report.{fmt.lower()}")
        export_report(SAMPLE_REPORT, path, fmt)
        loaded = load_report(path, fmt)

        assert loaded == SAMPLE_REPORT
        assert isinstance(loaded.total_requests, int)

    def test_json_layout(self, tmp_path):
        path = tmp_path / "report.json"
        export_report(SAMPLE_REPORT, str(path), "json")
        data = json.loads(path.read_text())

        assert list(data.keys()) == list(BenchmarkReport._fields)
        assert data["total_requests"] == 50
        assert data["qps"] == pytest.approx(388.8)

    def test_csv_is_one_flat_record(self, tmp_path):
        path = tmp_path / "report.csv"
        export_report(SAMPLE_REPORT, str(path), "csv")
        with open(path, newline='') as f:
            rows = list(csv.reader(f))

        assert rows[0] == list(BenchmarkReport._fields)
        assert len(rows) == 2
        assert rows[1][0] == "50"

    def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "report.json"
        export_report(EMPTY_REPORT, str(path), "json")
        assert load_report(str(path), "json") == EMPTY_REPORT

    def test_unsupported_format(self, tmp_path):
        with pytest.raises(ConfigError):
            export_report(SAMPLE_REPORT, str(tmp_path / "report.xml"), "xml")

    def test_unwritable_path(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(ExportError):
            export_report(SAMPLE_REPORT, str(blocker / "report.json"), "json")

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(ExportError):
            load_report(str(tmp_path / "absent.json"), "json")

    def test_load_malformed_record(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"total_requests": 1}))
        with pytest.raises(ExportError):
            load_report(str(path), "json")

    def test_load_csv_with_extra_rows(self, tmp_path):
        path = tmp_path / "two.csv"
        export_report(SAMPLE_REPORT, str(path), "csv")
        with open(path, "a", newline='') as f:
            csv.writer(f).writerow(["1"] * len(BenchmarkReport._fields))
        with pytest.raises(ExportError):
            load_report(str(path), "csv")


class TestPrinting:
    def test_print_report(self, capsys):
        print_report(SAMPLE_REPORT)
        out = capsys.readouterr().out
        assert "Total:          50" in out
        assert "96.00%" in out
        assert "P99:" in out
        assert "388.80" in out

    def test_print_report_without_successes(self, capsys):
        print_report(EMPTY_REPORT)
        out = capsys.readouterr().out
        assert "Failed:         20 (100.00%)" in out
        assert "P50" not in out

    def test_print_config_count_mode(self, capsys):
        print_config(RunConfig(url="http://x.test/", requests=7, concurrency=3,
                               headers=["A: 1", "B: 2"], keepalive=True))
        out = capsys.readouterr().out
        assert "Requests:       7" in out
        assert "Concurrency:    3" in out
        assert "enabled" in out
        assert "Custom headers: 2" in out

    def test_print_config_duration_mode(self, capsys):
        print_config(RunConfig(url="http://x.test/", timelimit=5, proxy="socks5://127.0.0.1:1080",
                               content_type="application/json"))
        out = capsys.readouterr().out
        assert "Duration:       5 s" in out
        assert "Requests:" not in out
        assert "socks5://127.0.0.1:1080" in out
        assert "application/json" in out

    def test_no_colour_when_not_a_terminal(self, capsys):
        print_config(RunConfig(url="http://x.test/"))
        print_report(SAMPLE_REPORT)
        out = capsys.readouterr().out
        assert "\033[" not in out
        assert "=== Benchmark report ===" in out

    def test_section_titles_coloured_on_terminal(self, capsys, monkeypatch):
        monkeypatch.setattr(report, "_color_enabled", lambda: True)
        print_report(SAMPLE_REPORT)
        out = capsys.readouterr().out
        assert f"{report.YELLOW}Requests:{report.RESET}" in out
        assert f"{report.YELLOW}Latency percentiles:{report.RESET}" in out
        assert f"{report.CYAN}{report.BOLD}=== Benchmark report ==={report.RESET}" in out
        # values stay plain
        assert "  Total:          50\n" in out
