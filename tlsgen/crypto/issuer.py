"""Signing identity resolution.

`resolve_issuer(material)` returns `SelfSigned` when no CA material is
given, otherwise parses the CA certificate and key into `ChainSigned`.
The supplied material is only read, never modified.
"""

from dataclasses import dataclass
from typing import Optional, Union

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ed448, ed25519
from cryptography.hazmat.primitives.serialization import load_pem_private_key

from tlsgen.errors import InvalidIssuerError
from tlsgen.options import IssuerMaterial


@dataclass(frozen=True)
class SelfSigned:
	"""The new certificate is its own issuer and signs with its own key."""

	mode = "self"


@dataclass(frozen=True)
class ChainSigned:
	ca_certificate: x509.Certificate
	ca_private_key: object

	mode = "ca"

	def authority_key_identifier(self) -> x509.AuthorityKeyIdentifier:
		try:
			ski = self.ca_certificate.extensions.get_extension_for_class(x509.SubjectKeyIdentifier)
		except x509.ExtensionNotFound:
			return x509.AuthorityKeyIdentifier.from_issuer_public_key(self.ca_certificate.public_key())
		return x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(ski.value)


Resolution = Union[SelfSigned, ChainSigned]


def _public_der(public_key) -> bytes:
	return public_key.public_bytes(
		encoding=serialization.Encoding.DER,
		format=serialization.PublicFormat.SubjectPublicKeyInfo,
	)


def signature_hash(private_key) -> Optional[hashes.HashAlgorithm]:
	"""Ed25519/Ed448 sign without a separate digest; everything else uses SHA-256."""
	if isinstance(private_key, (ed25519.Ed25519PrivateKey, ed448.Ed448PrivateKey)):
		return None
	return hashes.SHA256()


def resolve_issuer(material: Optional[IssuerMaterial]) -> Resolution:
	if material is None:
		return SelfSigned()

	try:
		# a chain is accepted; the first certificate is the issuer
		ca_cert = x509.load_pem_x509_certificates(material.certificate)[0]
	except (ValueError, TypeError, IndexError) as exc:
		raise InvalidIssuerError("cannot parse ca certificate") from exc

	try:
		ca_key = load_pem_private_key(material.key, password=None)
	except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
		raise InvalidIssuerError("cannot parse ca private key") from exc

	try:
		matches = _public_der(ca_key.public_key()) == _public_der(ca_cert.public_key())
	except (ValueError, UnsupportedAlgorithm) as exc:
		raise InvalidIssuerError("unsupported ca key type") from exc
	if not matches:
		raise InvalidIssuerError("ca key does not match ca certificate")

	return ChainSigned(ca_certificate=ca_cert, ca_private_key=ca_key)
