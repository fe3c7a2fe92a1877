from datetime import datetime, timedelta, timezone

import pytest

from cert_watcher.models import CertificateRecord


@pytest.fixture
def make_record():
    """Build a leaf -> root record chain with the given days remaining for the leaf."""

    def _make(days_remaining: int = 90, subject: str = "leaf.example.com") -> CertificateRecord:
        now = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
        root = CertificateRecord(
            identifier="BB:BB",
            subject_name="Example Root CA",
            issuer_name="Example Root CA",
            valid_from=now - timedelta(days=3650),
            valid_to=now + timedelta(days=3650),
            days_remaining=3650,
            serial_number="1F",
            fingerprint="BB:BB",
        )
        return CertificateRecord(
            identifier="AA:AA",
            subject_name=subject,
            issuer_name="Example Root CA",
            valid_from=now - timedelta(days=10),
            valid_to=now + timedelta(days=days_remaining),
            days_remaining=days_remaining,
            serial_number="0A",
            fingerprint="AA:AA",
            next=root,
        )

    return _make
