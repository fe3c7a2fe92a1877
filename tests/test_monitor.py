"""Tests for scheduled expiry checks."""

import asyncio
import pytest
from unittest.mock import AsyncMock, patch

from cert_watcher.exceptions import ConnectionTimeoutError, InputError
from cert_watcher.models import ExpiryCheckResult, Severity
from cert_watcher.monitor import (
    check_expiry,
    classify_days_remaining,
    read_hostnames_from_file,
    run_expiry_check,
    worst_severity,
)

from helpers import make_two_certificate_chain, to_der


@pytest.mark.parametrize(
    "days, expected",
    [
        (365, Severity.OK),
        (30, Severity.OK),
        (29, Severity.WARN),
        (0, Severity.WARN),
        (-1, Severity.FAIL),
    ],
)
def test_classify_days_remaining(days, expected):
    assert classify_days_remaining(days, 30) == expected


def test_read_hostnames_from_file(tmp_path):
    hosts_file = tmp_path / "hosts.txt"
    hosts_file.write_text(
        "# monitored hosts\n"
        "example.com\n"
        "\n"
        "https://example.org/  # main site\n"
        "   api.example.net   \n",
        encoding="utf-8",
    )

    assert read_hostnames_from_file(hosts_file) == ["example.com", "https://example.org/", "api.example.net"]


class TestCheckExpiry:
    def test_alert_below_threshold(self, make_record):
        with patch("cert_watcher.monitor.analyze_host", new_callable=AsyncMock) as mock_analyze:
            mock_analyze.return_value = make_record(days_remaining=12)
            result = asyncio.run(check_expiry("example.com", threshold_days=30))

        assert result.alert
        assert result.severity == Severity.WARN
        assert result.record.days_remaining == 12
        assert result.error is None

    def test_no_alert(self, make_record):
        with patch("cert_watcher.monitor.analyze_host", new_callable=AsyncMock) as mock_analyze:
            mock_analyze.return_value = make_record(days_remaining=200)
            result = asyncio.run(check_expiry("example.com", threshold_days=30))

        assert not result.alert
        assert result.severity == Severity.OK

    def test_expired(self, make_record):
        with patch("cert_watcher.monitor.analyze_host", new_callable=AsyncMock) as mock_analyze:
            mock_analyze.return_value = make_record(days_remaining=-3)
            result = asyncio.run(check_expiry("example.com"))

        assert result.alert
        assert result.severity == Severity.FAIL

    def test_failure_is_recorded(self):
        with patch("cert_watcher.monitor.analyze_host", new_callable=AsyncMock) as mock_analyze:
            mock_analyze.side_effect = ConnectionTimeoutError("Connection timed out after 5.0s")
            result = asyncio.run(check_expiry("slow.example.com"))

        assert result.record is None
        assert result.error == "Connection timed out after 5.0s"
        assert result.severity == Severity.FAIL
        assert not result.alert

    def test_passes_settings_through(self, make_record):
        with patch("cert_watcher.monitor.analyze_host", new_callable=AsyncMock) as mock_analyze:
            mock_analyze.return_value = make_record()
            asyncio.run(check_expiry("example.com", port=8443, timeout=1.5, max_depth=4))

        mock_analyze.assert_awaited_once_with("example.com", port=8443, timeout=1.5, max_depth=4)


def test_run_expiry_check_keeps_order_and_reports_progress(make_record):
    async def fake_analyze(hostname, **kwargs):
        if hostname == "broken.example.com":
            raise InputError("bad host")
        await asyncio.sleep(0.01 if hostname == "a.example.com" else 0)
        return make_record(days_remaining=10 if hostname == "b.example.com" else 100, subject=hostname)

    progress = []
    with patch("cert_watcher.monitor.analyze_host", side_effect=fake_analyze):
        results = asyncio.run(
            run_expiry_check(
                ["a.example.com", "b.example.com", "broken.example.com"],
                threshold_days=30,
                progress_callback=lambda current, total: progress.append((current, total)),
            )
        )

    assert [r.hostname for r in results] == ["a.example.com", "b.example.com", "broken.example.com"]
    assert [r.severity for r in results] == [Severity.OK, Severity.WARN, Severity.FAIL]
    assert results[0].record.subject_name == "a.example.com"
    assert progress == [(1, 3), (2, 3), (3, 3)]


def test_run_expiry_check_empty():
    assert asyncio.run(run_expiry_check([])) == []


def test_worst_severity():
    def result(severity):
        return ExpiryCheckResult(hostname="h", threshold_days=30, severity=severity)

    assert worst_severity([]) == Severity.OK
    assert worst_severity([result(Severity.OK), result(Severity.WARN)]) == Severity.WARN
    assert worst_severity([result(Severity.WARN), result(Severity.FAIL)]) == Severity.FAIL


def test_run_expiry_check_invalid_hostname_does_not_abort_run():
    leaf, _, root, _ = make_two_certificate_chain()

    with patch("cert_watcher.chain.fetch_chain", new_callable=AsyncMock) as mock_fetch:
        mock_fetch.return_value = [to_der(leaf), to_der(root)]
        results = asyncio.run(run_expiry_check(["a..b", "example.com"], threshold_days=30))

    assert [r.hostname for r in results] == ["a..b", "example.com"]
    assert results[0].severity == Severity.FAIL
    assert results[0].record is None
    assert "Invalid hostname" in results[0].error
    assert results[1].error is None
    assert results[1].record is not None
    mock_fetch.assert_awaited_once()
