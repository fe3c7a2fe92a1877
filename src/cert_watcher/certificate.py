"""Certificate parsing and derived field computation."""

import hashlib
import logging
import warnings
from datetime import datetime, timezone
from typing import Optional

from cryptography import x509
from cryptography.utils import CryptographyDeprecationWarning
from cryptography.x509.oid import NameOID

from cert_watcher.exceptions import MalformedCertificateError
from cert_watcher.models import PeerCertificate

logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"

# Fixed day length; calendar-aware arithmetic would make results depend on DST/leap data
MILLISECONDS_PER_DAY = 24 * 60 * 60 * 1000


def _load_cert(cert_der: bytes) -> x509.Certificate:
    """
    Load a DER certificate while suppressing CryptographyDeprecationWarning.

    Servers in the wild still present certificates with non-positive serial
    numbers; cryptography warns about them but parses them fine.
    """
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", CryptographyDeprecationWarning)
        return x509.load_der_x509_certificate(cert_der)


def _first_attribute(name: x509.Name, oid: x509.ObjectIdentifier) -> Optional[str]:
    attributes = name.get_attributes_for_oid(oid)
    if not attributes:
        return None
    value = attributes[0].value
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    return value or None


def _name_to_str(name: x509.Name) -> str:
    try:
        return name.rfc4514_string()
    except ValueError:
        return str(name)


def select_display_name(common_name: Optional[str], organization: Optional[str]) -> str:
    """
    Pick a human-readable name for a certificate subject or issuer.

    Args:
        common_name: CN attribute, if present
        organization: O attribute, if present

    Returns:
        The common name, else the organization, else "Unknown"
    """
    if common_name:
        return common_name
    if organization:
        return organization
    return UNKNOWN_NAME


def format_fingerprint(cert_der: bytes) -> str:
    """Return the SHA-256 fingerprint as colon-separated uppercase hex."""
    digest = hashlib.sha256(cert_der).hexdigest().upper()
    return ":".join(digest[i:i + 2] for i in range(0, len(digest), 2))


def format_serial_number(serial: int) -> str:
    """
    Render a serial number as uppercase hex.

    Negative serials are shown as their minimal two's-complement bytes, the
    way they are encoded in the certificate.
    """
    if serial >= 0:
        return format(serial, "X")
    length = ((~serial).bit_length() + 8) // 8
    return serial.to_bytes(length, "big", signed=True).hex().upper()


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def calculate_days_remaining(valid_to: datetime, now: Optional[datetime] = None) -> int:
    """
    Whole days between now and valid_to, floored.

    Negative for expired certificates. Naive datetimes are treated as UTC.

    Args:
        valid_to: End of the validity window
        now: Reference time (defaults to the current UTC time)

    Returns:
        floor((valid_to - now) / one day)
    """
    if now is None:
        now = datetime.now(timezone.utc)
    delta = _as_utc(valid_to) - _as_utc(now)
    milliseconds = delta.days * MILLISECONDS_PER_DAY + delta.seconds * 1000 + delta.microseconds // 1000
    return milliseconds // MILLISECONDS_PER_DAY


def parse_certificate(cert_der: bytes) -> PeerCertificate:
    """
    Parse a DER-encoded certificate into a PeerCertificate.

    Args:
        cert_der: Certificate (DER)

    Returns:
        PeerCertificate without issuer link

    Raises:
        MalformedCertificateError: If the certificate cannot be parsed
    """
    if not cert_der:
        raise MalformedCertificateError("Empty certificate data")

    fingerprint = format_fingerprint(cert_der)

    try:
        cert = _load_cert(cert_der)
    except ValueError as e:
        raise MalformedCertificateError(f"Could not parse certificate: {e}", fingerprint=fingerprint)

    try:
        not_before = cert.not_valid_before_utc
        not_after = cert.not_valid_after_utc
    except ValueError as e:
        raise MalformedCertificateError(
            f"Certificate {fingerprint} has an unreadable validity period: {e}", fingerprint=fingerprint
        )

    try:
        subject = cert.subject
        issuer = cert.issuer
    except ValueError as e:
        raise MalformedCertificateError(
            f"Certificate {fingerprint} has an unreadable name: {e}", fingerprint=fingerprint
        )

    peer_cert = PeerCertificate(
        der=cert_der,
        fingerprint=fingerprint,
        subject_dn=_name_to_str(subject),
        issuer_dn=_name_to_str(issuer),
        serial_number=format_serial_number(cert.serial_number),
        not_before=not_before,
        not_after=not_after,
        subject_common_name=_first_attribute(subject, NameOID.COMMON_NAME),
        subject_organization=_first_attribute(subject, NameOID.ORGANIZATION_NAME),
        issuer_common_name=_first_attribute(issuer, NameOID.COMMON_NAME),
        issuer_organization=_first_attribute(issuer, NameOID.ORGANIZATION_NAME),
    )
    logger.debug(f"Parsed certificate: subject={peer_cert.subject_dn}, fingerprint={fingerprint}")
    return peer_cert
