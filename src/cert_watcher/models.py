"""Data models for certificate chain analysis."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional
from datetime import datetime


class Severity(str, Enum):
    """Severity levels for expiry results."""

    OK = "OK"
    WARN = "WARN"
    FAIL = "FAIL"


@dataclass
class PeerCertificate:
    """A single certificate as presented by the peer, normalized for analysis."""

    der: bytes
    fingerprint: str
    subject_dn: str
    issuer_dn: str
    serial_number: str
    not_before: Optional[datetime]
    not_after: Optional[datetime]
    subject_common_name: Optional[str] = None
    subject_organization: Optional[str] = None
    issuer_common_name: Optional[str] = None
    issuer_organization: Optional[str] = None
    # Issuing certificate from the same presented chain (self-issued certs point to themselves)
    issuer_certificate: Optional["PeerCertificate"] = field(default=None, repr=False, compare=False)

    @property
    def is_empty(self) -> bool:
        return not self.fingerprint

    @property
    def is_self_issued(self) -> bool:
        return self.subject_dn == self.issuer_dn


@dataclass(frozen=True)
class CertificateRecord:
    """One analyzed certificate; `next` points at the issuer's record."""

    identifier: str
    subject_name: str
    issuer_name: str
    valid_from: datetime
    valid_to: datetime
    days_remaining: int
    serial_number: str
    fingerprint: str
    next: Optional["CertificateRecord"] = None

    def __post_init__(self) -> None:
        if self.next is not None and self.next.identifier == self.identifier:
            raise ValueError(f"Certificate {self.identifier} cannot be its own issuer record")

    def __iter__(self) -> Iterator["CertificateRecord"]:
        record: Optional[CertificateRecord] = self
        while record is not None:
            yield record
            record = record.next

    @property
    def chain_length(self) -> int:
        return sum(1 for _ in self)

    @property
    def terminal(self) -> "CertificateRecord":
        """Last record of the chain (root or last presented certificate)."""
        record = self
        while record.next is not None:
            record = record.next
        return record


@dataclass
class ExpiryCheckResult:
    """Result of an expiry check for one hostname."""

    hostname: str
    threshold_days: int
    record: Optional[CertificateRecord] = None
    error: Optional[str] = None
    severity: Severity = Severity.FAIL

    @property
    def alert(self) -> bool:
        """True if the leaf certificate expires within the threshold."""
        return self.record is not None and self.record.days_remaining < self.threshold_days
