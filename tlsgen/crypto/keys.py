"""RSA key pair generation and PEM encoding for issued certificates.

Functions provided:
- generate_key_pair(bits) -> rsa.RSAPrivateKey
- encode_private_key(private_key) -> bytes

Keys below MIN_KEY_BITS are refused. LEGACY_KEY_BITS is the historical
default of older configurations and is rejected like any other weak size.
"""

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from tlsgen.errors import KeyGenerationError


LEGACY_KEY_BITS = 1024
MIN_KEY_BITS = 2048
PUBLIC_EXPONENT = 65537


def generate_key_pair(bits: int) -> rsa.RSAPrivateKey:
	"""Generate a fresh RSA private key of `bits` strength."""
	if isinstance(bits, bool) or not isinstance(bits, int):
		raise KeyGenerationError(f"key size must be an integer, got {bits!r}")
	if bits < MIN_KEY_BITS:
		raise KeyGenerationError(f"key size {bits} is below the minimum of {MIN_KEY_BITS} bits")
	try:
		return rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=bits)
	except (ValueError, OSError) as exc:
		raise KeyGenerationError(f"cannot generate {bits}-bit rsa key") from exc


def encode_private_key(private_key: rsa.RSAPrivateKey) -> bytes:
	"""PEM-encode the key as PKCS#1 ("RSA PRIVATE KEY"), unencrypted."""
	return private_key.private_bytes(
		encoding=serialization.Encoding.PEM,
		format=serialization.PrivateFormat.TraditionalOpenSSL,
		encryption_algorithm=serialization.NoEncryption(),
	)
