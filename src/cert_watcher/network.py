"""Network operations for TLS connections."""

import asyncio
import ipaddress
import logging
import re
import socket
import ssl
import sys
from typing import Any, List

from cert_watcher.exceptions import (
    ConnectionTimeoutError,
    DNSResolutionError,
    InputError,
    NetworkError,
    NoCertificateError,
    TLSHandshakeError,
)

logger = logging.getLogger(__name__)

DEFAULT_PORT = 443
DEFAULT_TIMEOUT = 5.0

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")


def normalize_host(host: Any) -> str:
    """
    Reduce a user-supplied target to a bare hostname.

    Accepts things like "https://example.com/path?q=1", "example.com:8443"
    or "[::1]" and returns "example.com" / "::1".

    Args:
        host: Hostname or URL

    Returns:
        Lowercased hostname without scheme, credentials, port or path

    Raises:
        InputError: If host is not a string, nothing usable remains or the
            name is not a valid DNS hostname
    """
    if not isinstance(host, str):
        raise InputError(f"Host must be a string, got {type(host).__name__}")

    target = host.strip()
    target = _SCHEME_RE.sub("", target)
    # Path, query and fragment
    target = re.split(r"[/?#]", target, maxsplit=1)[0]
    # Credentials
    target = target.rpartition("@")[2]

    if target.startswith("["):
        # Bracketed IPv6 literal, optionally followed by :port
        end = target.find("]")
        if end == -1:
            raise InputError(f"Invalid IPv6 host: {host!r}")
        target = target[1:end]
    elif target.count(":") == 1:
        target = target.split(":", 1)[0]

    target = target.rstrip(".").lower()
    if not target:
        raise InputError(f"No hostname in {host!r}")

    try:
        ipaddress.ip_address(target)
    except ValueError:
        # Empty or over-long labels
        try:
            target.encode("idna")
        except UnicodeError as e:
            raise InputError(f"Invalid hostname {host!r}: {e}")
    return target


def _create_inspection_context() -> ssl.SSLContext:
    """SSL context that completes the handshake regardless of certificate validity."""
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


def _extract_presented_chain(ssl_object: Any) -> List[bytes]:
    """
    Read the certificate chain the peer sent, leaf first, as DER.

    get_unverified_chain() is public from Python 3.13 on. Older interpreters
    expose the same data on the private _sslobj. If neither works, only the
    leaf is returned.
    """
    if ssl_object is None:
        return []

    if hasattr(ssl_object, "get_unverified_chain"):
        chain = ssl_object.get_unverified_chain() or []
        logger.debug(f"Received {len(chain)} certificate(s) via get_unverified_chain()")
        return [cert for cert in chain if cert]

    sslobj = getattr(ssl_object, "_sslobj", None)
    if sslobj is not None and hasattr(sslobj, "get_unverified_chain"):
        try:
            chain = sslobj.get_unverified_chain() or []
            ders = [cert.public_bytes(ssl._ssl.ENCODING_DER) for cert in chain]
            logger.debug(f"Received {len(ders)} certificate(s) via _sslobj.get_unverified_chain()")
            return [der for der in ders if der]
        except (AttributeError, TypeError, ValueError, ssl.SSLError) as e:
            logger.debug(f"Error calling _sslobj.get_unverified_chain(): {e}")

    python_version = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    logger.warning(
        f"Full chain retrieval is not available (Python {python_version}, {ssl.OPENSSL_VERSION}); "
        "only the leaf certificate will be analyzed"
    )
    leaf_der = ssl_object.getpeercert(binary_form=True)
    return [leaf_der] if leaf_der else []


async def fetch_chain(host: str, port: int = DEFAULT_PORT, timeout: float = DEFAULT_TIMEOUT) -> List[bytes]:
    """
    Establish a TLS connection and return the presented certificate chain.

    Certificate verification is disabled: invalid, expired and self-signed
    certificates are still retrieved. No application data is sent.

    Args:
        host: Target hostname or URL
        port: Target port
        timeout: Deadline in seconds for connect and handshake

    Returns:
        DER-encoded certificates in presentation order (leaf first)

    Raises:
        InputError: If host is unusable
        DNSResolutionError: If the hostname does not resolve
        TLSHandshakeError: If the TLS handshake fails
        ConnectionTimeoutError: If the deadline is exceeded
        NetworkError: For any other connection failure
        NoCertificateError: If the peer presented no certificate
    """
    hostname = normalize_host(host)
    context = _create_inspection_context()
    logger.debug(f"Connecting to {hostname}:{port} (timeout={timeout}s)")

    try:
        _, writer = await asyncio.wait_for(
            asyncio.open_connection(hostname, port, ssl=context, server_hostname=hostname),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        raise ConnectionTimeoutError(f"Connection timed out after {timeout}s", hostname, port)
    except socket.gaierror as e:
        raise DNSResolutionError(f"DNS resolution failed for {hostname}: {e}", hostname, port)
    except ssl.SSLError as e:
        raise TLSHandshakeError(f"TLS handshake failed: {e}", hostname, port)
    except UnicodeError as e:
        raise InputError(f"Invalid hostname {hostname!r}: {e}")
    except OSError as e:
        raise NetworkError(f"Connection to {hostname}:{port} failed: {e}", hostname, port)

    logger.debug("TLS handshake completed")
    try:
        chain = _extract_presented_chain(writer.get_extra_info("ssl_object"))
    finally:
        writer.close()
        try:
            await writer.wait_closed()
        except (OSError, ssl.SSLError) as e:
            logger.debug(f"Error while closing connection to {hostname}:{port}: {e}")

    if not chain:
        raise NoCertificateError(f"No certificate found for {hostname}", hostname)
    return chain
