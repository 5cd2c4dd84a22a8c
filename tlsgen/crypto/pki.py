"""X.509 helpers: PEM loading, single-step signature checks, the trust pool.

Functions:
- load_pem_cert(path_or_bytes): load a PEM certificate from path or bytes
- is_signed_by(cert, ca_cert): verify cert signature using CA public key
- load_certificates(*paths): read PEM trust files into a CertificatePool

Trust file problems raise TrustPoolError; every file must contribute at
least one certificate.
"""

from typing import Iterable, List, Optional, Union

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm

from tlsgen.errors import TrustPoolError


def load_pem_cert(data: Union[str, bytes]) -> x509.Certificate:
	"""Load an X.509 certificate from a file path or from PEM bytes.

	Returns an instance of `cryptography.x509.Certificate`.
	"""
	if isinstance(data, str):
		# treat as path
		with open(data, "rb") as f:
			data = f.read()
	return x509.load_pem_x509_certificate(data)


def is_signed_by(cert: x509.Certificate, ca_cert: x509.Certificate) -> bool:
	"""Return True if `cert` names `ca_cert` as issuer and its signature
	verifies under the CA public key. Chains are not built."""
	try:
		cert.verify_directly_issued_by(ca_cert)
	except (ValueError, TypeError, InvalidSignature, UnsupportedAlgorithm):
		return False
	return True


class CertificatePool:
	"""Set of trusted certificates, kept in insertion order without duplicates."""

	def __init__(self, certs: Iterable[x509.Certificate] = ()):
		self._certs: List[x509.Certificate] = []
		for cert in certs:
			self.add(cert)

	def add(self, cert: x509.Certificate) -> None:
		if cert not in self._certs:
			self._certs.append(cert)

	def append_pem(self, data: bytes) -> int:
		"""Add every certificate in `data`; return how many were parsed."""
		try:
			certs = x509.load_pem_x509_certificates(data)
		except ValueError:
			return 0
		for cert in certs:
			self.add(cert)
		return len(certs)

	@property
	def certificates(self) -> List[x509.Certificate]:
		return list(self._certs)

	def subjects(self) -> List[x509.Name]:
		return [c.subject for c in self._certs]

	def find_issuer(self, cert: x509.Certificate) -> Optional[x509.Certificate]:
		"""Return the pooled certificate that directly signed `cert`, if any."""
		for candidate in self._certs:
			if candidate.subject == cert.issuer and is_signed_by(cert, candidate):
				return candidate
		return None

	def __len__(self) -> int:
		return len(self._certs)

	def __contains__(self, cert: x509.Certificate) -> bool:
		return cert in self._certs


def load_certificates(*paths: str) -> CertificatePool:
	pool = CertificatePool()
	for path in paths:
		try:
			with open(path, "rb") as f:
				data = f.read()
		except OSError as exc:
			raise TrustPoolError(f"cannot read trust file {path!r}") from exc
		if not pool.append_pem(data):
			raise TrustPoolError(f"failed appending certs: {path}")
	return pool
