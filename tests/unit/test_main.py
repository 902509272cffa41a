"""
Unit tests for the command line entry point.
"""

from unittest.mock import patch

import requests

from callsight.core.statistics import calculate_statistics
from callsight.main import main

CSV_TEXT = (
    "Originating Number,Call duration,Transcript,customer_name\n"
    "5550001,100,Need a brake quote,Ann\n"
)


class TestAnalyzeCommand:

    def setup_method(self):
        self.signal_patcher = patch("callsight.main.signal")
        self.signal_patcher.start()

    def teardown_method(self):
        self.signal_patcher.stop()

    def _run(self, tmp_path, provider, snapshot, *extra):
        calls_file = tmp_path / "calls.csv"
        calls_file.write_text(CSV_TEXT, encoding="utf-8")
        with patch("callsight.main.create_provider", return_value=provider), \
                patch("callsight.main.run_analysis", return_value=snapshot):
            return main(["analyze", str(calls_file), *extra])

    def test_report_to_file(self, tmp_path, make_provider, sample_calls):
        report_file = tmp_path / "report.txt"

        code = self._run(
            tmp_path, make_provider(["unused"]), calculate_statistics(sample_calls),
            "--report", str(report_file),
        )

        assert code == 0
        assert "Total Calls" in report_file.read_text(encoding="utf-8")

    def test_cancelled_run(self, tmp_path, make_provider):
        assert self._run(tmp_path, make_provider(["unused"]), None) == 130

    def test_connection_failure_during_summary(self, tmp_path, make_provider, sample_calls):
        provider = make_provider([requests.ConnectionError("connection refused")])
        summary_file = tmp_path / "summary.txt"

        code = self._run(
            tmp_path, provider, calculate_statistics(sample_calls),
            "--report", str(tmp_path / "report.txt"), "--summary", str(summary_file),
        )

        assert code == 1
        assert provider.call_count == 1
        assert not summary_file.exists()
