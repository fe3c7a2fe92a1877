"""Certificate factories shared by the tests."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from cert_watcher.models import PeerCertificate


def make_name(common_name: Optional[str] = None, organization: Optional[str] = None) -> x509.Name:
    attributes = [x509.NameAttribute(NameOID.COUNTRY_NAME, "US")]
    if organization:
        attributes.append(x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization))
    if common_name:
        attributes.append(x509.NameAttribute(NameOID.COMMON_NAME, common_name))
    return x509.Name(attributes)


def make_key():
    return ec.generate_private_key(ec.SECP256R1())


def issue_certificate(
    subject: x509.Name,
    issuer: x509.Name,
    public_key,
    signing_key,
    not_before: Optional[datetime] = None,
    not_after: Optional[datetime] = None,
    ca: bool = False,
    serial_number: Optional[int] = None,
) -> x509.Certificate:
    now = datetime.now(timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(public_key)
        .serial_number(serial_number or x509.random_serial_number())
        .not_valid_before(not_before or now - timedelta(days=1))
        .not_valid_after(not_after or now + timedelta(days=365))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
        .sign(signing_key, hashes.SHA256())
    )


def make_self_signed(
    common_name: Optional[str] = "root.example.com",
    organization: Optional[str] = None,
    not_after: Optional[datetime] = None,
):
    """Return (certificate, key) for a self-signed CA."""
    key = make_key()
    name = make_name(common_name, organization)
    cert = issue_certificate(name, name, key.public_key(), key, not_after=not_after, ca=True)
    return cert, key


def make_two_certificate_chain(leaf_not_after: Optional[datetime] = None):
    """Return (leaf, leaf_key, root, root_key): a leaf issued by a self-signed root."""
    root, root_key = make_self_signed("Example Root CA", "Example Org")
    leaf_key = make_key()
    leaf = issue_certificate(
        make_name("leaf.example.com"),
        root.subject,
        leaf_key.public_key(),
        root_key,
        not_after=leaf_not_after,
    )
    return leaf, leaf_key, root, root_key


def make_three_certificate_chain():
    """Return [leaf, intermediate, root] certificates."""
    root, root_key = make_self_signed("Example Root CA")
    intermediate_key = make_key()
    intermediate = issue_certificate(
        make_name("Example Intermediate CA"), root.subject, intermediate_key.public_key(), root_key, ca=True
    )
    leaf_key = make_key()
    leaf = issue_certificate(
        make_name("leaf.example.com"), intermediate.subject, leaf_key.public_key(), intermediate_key
    )
    return [leaf, intermediate, root]


def to_der(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(serialization.Encoding.DER)


def to_pem(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(serialization.Encoding.PEM)


def key_to_pem(key) -> bytes:
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )


def make_peer(
    fingerprint: str,
    subject: str = "Subject",
    issuer: str = "Issuer",
    not_after: Optional[datetime] = None,
    not_before: Optional[datetime] = None,
) -> PeerCertificate:
    """Synthetic PeerCertificate for walk tests; links are set by the caller."""
    now = datetime.now(timezone.utc)
    return PeerCertificate(
        der=fingerprint.encode(),
        fingerprint=fingerprint,
        subject_dn=f"CN={subject}",
        issuer_dn=f"CN={issuer}",
        serial_number="01",
        not_before=not_before or now - timedelta(days=1),
        not_after=not_after or now + timedelta(days=90),
        subject_common_name=subject,
        issuer_common_name=issuer,
    )
