"""Expiry checks for a caller-supplied set of hostnames."""

import asyncio
import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from cert_watcher.chain import DEFAULT_MAX_CHAIN_DEPTH, analyze_host
from cert_watcher.exceptions import CertWatcherError
from cert_watcher.models import ExpiryCheckResult, Severity
from cert_watcher.network import DEFAULT_PORT, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

DEFAULT_ALERT_THRESHOLD_DAYS = 30


def classify_days_remaining(days_remaining: int, threshold_days: int = DEFAULT_ALERT_THRESHOLD_DAYS) -> Severity:
    """FAIL for expired certificates, WARN below the threshold, OK otherwise."""
    if days_remaining < 0:
        return Severity.FAIL
    if days_remaining < threshold_days:
        return Severity.WARN
    return Severity.OK


def read_hostnames_from_file(path: Path) -> List[str]:
    """
    Read hostnames from a file, one per line.

    Blank lines and lines starting with '#' are ignored; trailing comments
    are stripped.
    """
    hostnames: List[str] = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            entry = line.split("#", 1)[0].strip()
            if entry:
                hostnames.append(entry)
    return hostnames


async def check_expiry(
    hostname: str,
    threshold_days: int = DEFAULT_ALERT_THRESHOLD_DAYS,
    port: int = DEFAULT_PORT,
    timeout: float = DEFAULT_TIMEOUT,
    max_depth: int = DEFAULT_MAX_CHAIN_DEPTH,
) -> ExpiryCheckResult:
    """
    Analyze one hostname and classify its leaf certificate.

    Engine failures are recorded on the result (severity FAIL) and logged
    rather than raised, so one bad host does not abort a whole run.
    """
    result = ExpiryCheckResult(hostname=hostname, threshold_days=threshold_days)
    try:
        record = await analyze_host(hostname, port=port, timeout=timeout, max_depth=max_depth)
    except CertWatcherError as e:
        result.error = str(e)
        result.severity = Severity.FAIL
        logger.error(f"[ERROR] Failed to check {hostname}: {e}")
        return result

    result.record = record
    result.severity = classify_days_remaining(record.days_remaining, threshold_days)
    if result.alert:
        logger.warning(f"[ALERT] Certificate for {hostname} expires in {record.days_remaining} days!")
    else:
        logger.info(f"[INFO] Certificate for {hostname} is valid for {record.days_remaining} days.")
    return result


async def run_expiry_check(
    hostnames: Iterable[str],
    threshold_days: int = DEFAULT_ALERT_THRESHOLD_DAYS,
    port: int = DEFAULT_PORT,
    timeout: float = DEFAULT_TIMEOUT,
    max_depth: int = DEFAULT_MAX_CHAIN_DEPTH,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> List[ExpiryCheckResult]:
    """
    Check all hostnames concurrently.

    Args:
        hostnames: Hostnames or URLs to check
        threshold_days: Leaf certificates with fewer days remaining raise an alert
        port: Target port
        timeout: Per-host connection deadline in seconds
        max_depth: Maximum chain length
        progress_callback: Called with (completed, total) after each host

    Returns:
        Results in the order the hostnames were given
    """
    targets = list(hostnames)
    total = len(targets)
    completed = 0

    async def _run(hostname: str) -> ExpiryCheckResult:
        nonlocal completed
        result = await check_expiry(hostname, threshold_days, port, timeout, max_depth)
        completed += 1
        if progress_callback:
            progress_callback(completed, total)
        return result

    results = await asyncio.gather(*(_run(hostname) for hostname in targets))

    alerts = sum(1 for r in results if r.alert)
    errors = sum(1 for r in results if r.error)
    logger.info(f"Expiry check completed: {total} total, {alerts} alert(s), {errors} error(s)")
    return list(results)


def worst_severity(results: Iterable[ExpiryCheckResult]) -> Severity:
    severities = {r.severity for r in results}
    if Severity.FAIL in severities:
        return Severity.FAIL
    if Severity.WARN in severities:
        return Severity.WARN
    return Severity.OK
