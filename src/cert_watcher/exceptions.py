"""Structured exception taxonomy for certificate chain analysis."""

from typing import Optional


class CertWatcherError(Exception):
    """Base exception for all cert-watcher errors."""

    pass


class InputError(CertWatcherError, ValueError):
    """Host identifier is missing or malformed."""

    pass


class NetworkError(CertWatcherError, ConnectionError):
    """Network-related errors (connection refused, unreachable, etc.)."""

    def __init__(self, message: str, hostname: Optional[str] = None, port: Optional[int] = None):
        super().__init__(message)
        self.hostname = hostname
        self.port = port


class DNSResolutionError(NetworkError):
    """DNS resolution failed."""

    pass


class TLSHandshakeError(NetworkError):
    """TLS handshake failed."""

    pass


class ConnectionTimeoutError(NetworkError, TimeoutError):
    """Connection or handshake did not finish before the deadline."""

    pass


class NoCertificateError(CertWatcherError):
    """Handshake succeeded but the peer presented no certificate."""

    def __init__(self, message: str, hostname: Optional[str] = None):
        super().__init__(message)
        self.hostname = hostname


class CertificateError(CertWatcherError):
    """Certificate parsing or analysis errors."""

    pass


class MalformedCertificateError(CertificateError):
    """Certificate cannot be parsed or lacks its validity window."""

    def __init__(self, message: str, fingerprint: Optional[str] = None):
        super().__init__(message)
        self.fingerprint = fingerprint
