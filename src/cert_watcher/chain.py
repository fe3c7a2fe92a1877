"""Certificate chain linking and analysis."""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Set

from cert_watcher.certificate import calculate_days_remaining, parse_certificate, select_display_name
from cert_watcher.exceptions import MalformedCertificateError, NoCertificateError
from cert_watcher.models import CertificateRecord, PeerCertificate
from cert_watcher.network import DEFAULT_PORT, DEFAULT_TIMEOUT, fetch_chain, normalize_host

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHAIN_DEPTH = 10


def link_presented_chain(certs: List[PeerCertificate]) -> PeerCertificate:
    """
    Link each presented certificate to its issuer within the same chain.

    A self-issued certificate links to itself. Otherwise the issuer is the
    first certificate after it (in presentation order) whose subject matches
    its issuer name, falling back to an earlier one. Certificates whose issuer
    was not presented stay unlinked.

    Args:
        certs: Parsed certificates in presentation order (leaf first)

    Returns:
        The leaf certificate

    Raises:
        NoCertificateError: If certs is empty
    """
    if not certs:
        raise NoCertificateError("Certificate chain is empty")

    for index, cert in enumerate(certs):
        if cert.is_self_issued:
            cert.issuer_certificate = cert
            continue

        later = certs[index + 1:]
        earlier = certs[:index]
        cert.issuer_certificate = next(
            (candidate for candidate in later + earlier if candidate.subject_dn == cert.issuer_dn),
            None,
        )
        if cert.issuer_certificate is None:
            logger.debug(f"Issuer '{cert.issuer_dn}' of '{cert.subject_dn}' was not presented by the peer")

    return certs[0]


def parse_chain(chain_der: List[bytes]) -> PeerCertificate:
    """Parse DER certificates (leaf first) and link them into a chain."""
    return link_presented_chain([parse_certificate(cert_der) for cert_der in chain_der])


def _walk_chain(head: PeerCertificate, max_depth: int) -> List[PeerCertificate]:
    """
    Follow issuer links from head until the chain terminates.

    Stops at a missing/empty issuer, a self-signed root, a fingerprint that
    was already visited, or after max_depth certificates.
    """
    walk: List[PeerCertificate] = []
    seen: Set[str] = set()
    current: Optional[PeerCertificate] = head

    while current is not None:
        seen.add(current.fingerprint)
        walk.append(current)

        issuer = current.issuer_certificate
        if issuer is None or issuer.is_empty:
            break
        if issuer.fingerprint == current.fingerprint:
            logger.debug(f"Reached self-signed root: {current.subject_dn}")
            break
        if issuer.fingerprint in seen:
            logger.warning(
                f"Certificate chain cycles back to {issuer.fingerprint} ({issuer.subject_dn}); stopping walk"
            )
            break
        if len(walk) >= max_depth:
            logger.warning(f"Certificate chain exceeds {max_depth} certificates; truncating")
            break
        current = issuer

    return walk


def _build_record(
    cert: PeerCertificate, now: datetime, next_record: Optional[CertificateRecord]
) -> CertificateRecord:
    if cert.not_after is None or cert.not_before is None:
        raise MalformedCertificateError(
            f"Certificate {cert.fingerprint or '<no fingerprint>'} ({cert.subject_dn}) has no validity period",
            fingerprint=cert.fingerprint,
        )

    return CertificateRecord(
        identifier=cert.fingerprint,
        subject_name=select_display_name(cert.subject_common_name, cert.subject_organization),
        issuer_name=select_display_name(cert.issuer_common_name, cert.issuer_organization),
        valid_from=cert.not_before,
        valid_to=cert.not_after,
        days_remaining=calculate_days_remaining(cert.not_after, now),
        serial_number=cert.serial_number,
        fingerprint=cert.fingerprint,
        next=next_record,
    )


def analyze_chain(
    head: PeerCertificate,
    now: Optional[datetime] = None,
    max_depth: int = DEFAULT_MAX_CHAIN_DEPTH,
) -> CertificateRecord:
    """
    Turn a linked raw chain into annotated CertificateRecords.

    Args:
        head: Leaf certificate with issuer links set
        now: Reference time for days remaining (defaults to current UTC time)
        max_depth: Maximum number of certificates to include

    Returns:
        The leaf record; the rest of the chain hangs off `next`

    Raises:
        MalformedCertificateError: If a certificate lacks its validity period
    """
    if head is None or head.is_empty:
        raise NoCertificateError("No certificate to analyze")
    if now is None:
        now = datetime.now(timezone.utc)

    walk = _walk_chain(head, max_depth)

    # Build from the terminal certificate back so each record is complete when created
    record: Optional[CertificateRecord] = None
    for cert in reversed(walk):
        record = _build_record(cert, now, record)

    logger.debug(f"Analyzed chain of {len(walk)} certificate(s) for {head.subject_dn}")
    return record


async def analyze_host(
    host: str,
    port: int = DEFAULT_PORT,
    timeout: float = DEFAULT_TIMEOUT,
    now: Optional[datetime] = None,
    max_depth: int = DEFAULT_MAX_CHAIN_DEPTH,
) -> CertificateRecord:
    """
    Fetch and analyze the certificate chain presented by host.

    Every call opens its own connection and builds its own records; nothing
    is shared between concurrent calls.

    Args:
        host: Hostname or URL
        port: Target port
        timeout: Connection deadline in seconds
        now: Reference time for days remaining
        max_depth: Maximum chain length

    Returns:
        Leaf CertificateRecord with the chain attached via `next`
    """
    hostname = normalize_host(host)
    chain_der = await fetch_chain(hostname, port, timeout)
    logger.debug(f"{hostname}:{port} presented {len(chain_der)} certificate(s)")
    return analyze_chain(parse_chain(chain_der), now=now, max_depth=max_depth)
