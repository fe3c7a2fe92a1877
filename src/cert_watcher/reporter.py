"""Report generation (text and JSON)."""

import json
import logging
from datetime import datetime, timezone
from io import StringIO
from typing import Any, Dict, List, Optional

from rich.console import Console

from cert_watcher.models import CertificateRecord, ExpiryCheckResult, Severity
from cert_watcher.monitor import DEFAULT_ALERT_THRESHOLD_DAYS, classify_days_remaining

logger = logging.getLogger(__name__)

# Global flag for colored output
_use_color = True


def set_color_output(enabled: bool) -> None:
    """Enable or disable colored output."""
    global _use_color
    _use_color = enabled


def _format_datetime(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat() + "Z"


def record_to_dict(record: CertificateRecord) -> Dict[str, Any]:
    """
    Serialize a record and its issuers into nested dictionaries.

    Built iteratively from the terminal record back to the leaf.
    """
    records = list(record)
    data: Optional[Dict[str, Any]] = None
    for current in reversed(records):
        data = {
            "id": current.identifier,
            "subject": current.subject_name,
            "issuer": current.issuer_name,
            "valid_from": _format_datetime(current.valid_from),
            "valid_to": _format_datetime(current.valid_to),
            "days_remaining": current.days_remaining,
            "serial_number": current.serial_number,
            "fingerprint": current.fingerprint,
            "next": data,
        }
    return data


def generate_json_report(record: CertificateRecord) -> str:
    """
    Generate JSON report.

    Args:
        record: Leaf record of the analyzed chain

    Returns:
        JSON string
    """
    return json.dumps(record_to_dict(record), indent=2)


def _format_severity(severity: Severity) -> str:
    """Format severity with visual indicator."""
    if severity == Severity.OK:
        text, style = f"{severity.value} ✓", "green"
    elif severity == Severity.WARN:
        text, style = f"{severity.value} ⚠", "yellow"
    else:
        text, style = f"{severity.value} ✗", "red"

    if not _use_color:
        return text

    output = StringIO()
    console = Console(file=output, force_terminal=True, width=1000)
    console.print(f"[{style}]{text}[/{style}]", end="")
    return output.getvalue().strip()


def _position_label(index: int, total: int, record: CertificateRecord) -> str:
    if index == 0:
        return "Leaf"
    if index == total - 1 and record.subject_name == record.issuer_name:
        return "Root"
    return f"Intermediate {index}"


def generate_text_report(
    record: CertificateRecord,
    target: Optional[str] = None,
    threshold_days: int = DEFAULT_ALERT_THRESHOLD_DAYS,
) -> str:
    """
    Generate human-readable text report of a certificate chain.

    Args:
        record: Leaf record of the analyzed chain
        target: Hostname the chain was retrieved from
        threshold_days: Days remaining below which a certificate is flagged WARN

    Returns:
        Formatted text report
    """
    records = list(record)
    lines = []
    lines.append("=" * 70)
    lines.append("Certificate Chain Report")
    lines.append("=" * 70)
    if target:
        lines.append(f"Target: {target}")
    lines.append(f"Timestamp: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')}")
    lines.append(f"Chain Length: {len(records)}")
    lines.append("")

    for index, current in enumerate(records):
        severity = classify_days_remaining(current.days_remaining, threshold_days)
        lines.append(f"{_position_label(index, len(records), current)}: {current.subject_name}")
        lines.append(f"  Status: {_format_severity(severity)}")
        lines.append(f"  Issuer: {current.issuer_name}")
        lines.append(f"  Serial Number: {current.serial_number}")
        lines.append(f"  Valid From: {current.valid_from.strftime('%Y-%m-%d %H:%M:%S UTC')}")
        lines.append(f"  Valid To: {current.valid_to.strftime('%Y-%m-%d %H:%M:%S UTC')}")
        if current.days_remaining < 0:
            lines.append(f"  Days Remaining: {current.days_remaining} (expired)")
        else:
            lines.append(f"  Days Remaining: {current.days_remaining}")
        lines.append(f"  Fingerprint (SHA-256): {current.fingerprint}")
        lines.append("")

    leaf_severity = classify_days_remaining(record.days_remaining, threshold_days)
    lines.append(f"Leaf Status: {_format_severity(leaf_severity)}")
    lines.append("=" * 70)

    return "\n".join(lines)


def generate_expiry_report(results: List[ExpiryCheckResult]) -> str:
    """Generate a one-line-per-host summary of an expiry check run."""
    lines = []
    lines.append("=" * 70)
    lines.append("Certificate Expiry Check")
    lines.append("=" * 70)
    for result in results:
        if result.record is not None:
            detail = f"{result.record.days_remaining} days remaining ({result.record.subject_name})"
        else:
            detail = result.error or "no result"
        lines.append(f"{_format_severity(result.severity):<10} {result.hostname}: {detail}")
    lines.append("=" * 70)
    return "\n".join(lines)


def generate_expiry_json_report(results: List[ExpiryCheckResult]) -> str:
    """Generate JSON for an expiry check run."""
    data = [
        {
            "hostname": result.hostname,
            "severity": result.severity.value,
            "alert": result.alert,
            "threshold_days": result.threshold_days,
            "error": result.error,
            "chain": record_to_dict(result.record) if result.record is not None else None,
        }
        for result in results
    ]
    return json.dumps(data, indent=2)
