"""Unsigned certificate templates.

`new_template(config)` draws a random 128-bit serial number and anchors a
one-year validity window at the current time. Role-specific fields (extended
key usage, SANs, CA flag) are left for the issuer to fill in.
"""

import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Set, Tuple

from cryptography import x509
from cryptography.x509.oid import NameOID, ObjectIdentifier

from tlsgen.crypto.san import IPAddress
from tlsgen.errors import RandomnessError
from tlsgen.options import CertificateConfig, Subject


SERIAL_BITS = 128
VALIDITY = timedelta(days=365)

KEY_USAGE_FIELDS = (
	"digital_signature",
	"content_commitment",
	"key_encipherment",
	"data_encipherment",
	"key_agreement",
	"key_cert_sign",
	"crl_sign",
	"encipher_only",
	"decipher_only",
)

BASE_KEY_USAGE = frozenset({"key_encipherment", "digital_signature", "key_agreement"})


@dataclass
class CertificateTemplate:
	serial_number: int
	subject: Subject
	not_before: datetime
	not_after: datetime
	key_usage: Set[str] = field(default_factory=lambda: set(BASE_KEY_USAGE))
	ext_key_usage: List[ObjectIdentifier] = field(default_factory=list)
	ip_addresses: List[IPAddress] = field(default_factory=list)
	dns_names: List[str] = field(default_factory=list)
	is_ca: bool = False
	basic_constraints_valid: bool = True

	def subject_name(self) -> x509.Name:
		"""Build the subject DN, one RDN per value in C, ST, L, O, OU, CN order.

		Raises ValueError if an attribute is rejected (e.g. a country code that
		is not two characters long).
		"""
		attrs = []
		for oid, values in (
			(NameOID.COUNTRY_NAME, self.subject.country),
			(NameOID.STATE_OR_PROVINCE_NAME, self.subject.province),
			(NameOID.LOCALITY_NAME, self.subject.locality),
			(NameOID.ORGANIZATION_NAME, self.subject.organization),
			(NameOID.ORGANIZATIONAL_UNIT_NAME, self.subject.organizational_unit),
		):
			attrs.extend(x509.NameAttribute(oid, v) for v in values)
		if self.subject.common_name:
			attrs.append(x509.NameAttribute(NameOID.COMMON_NAME, self.subject.common_name))
		return x509.Name(attrs)

	def extensions(self) -> List[Tuple[x509.ExtensionType, bool]]:
		"""Return (extension, critical) pairs described by this template."""
		exts = []
		if self.basic_constraints_valid:
			exts.append((x509.BasicConstraints(ca=self.is_ca, path_length=None), True))
		if self.key_usage:
			usage = {name: name in self.key_usage for name in KEY_USAGE_FIELDS}
			exts.append((x509.KeyUsage(**usage), True))
		if self.ext_key_usage:
			exts.append((x509.ExtendedKeyUsage(self.ext_key_usage), False))
		names = [x509.DNSName(n) for n in self.dns_names]
		names.extend(x509.IPAddress(ip) for ip in self.ip_addresses)
		if names:
			# critical when the subject is empty (RFC 5280 4.2.1.6)
			exts.append((x509.SubjectAlternativeName(names), len(self.subject_name()) == 0))
		return exts


def random_serial_number() -> int:
	"""Uniform in [1, 2**128); zero is not a valid certificate serial."""
	serial = 0
	while serial == 0:
		try:
			serial = int.from_bytes(os.urandom(SERIAL_BITS // 8), "big")
		except (OSError, NotImplementedError) as exc:
			raise RandomnessError("secure random source unavailable") from exc
	return serial


def new_template(config: CertificateConfig, now: Optional[datetime] = None) -> CertificateTemplate:
	if now is None:
		now = datetime.now(timezone.utc)
	# X.509 times carry whole seconds
	not_before = now.replace(microsecond=0)
	return CertificateTemplate(
		serial_number=random_serial_number(),
		subject=config.subject,
		not_before=not_before,
		not_after=not_before + VALIDITY,
	)
