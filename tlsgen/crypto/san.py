"""Subject Alternative Name classification.

Host strings are split into IP addresses and DNS names. A trailing
`:port` is dropped first; `[v6]:port` and bare `[v6]` have their brackets
removed. Nothing is rejected: whatever does not parse as an IP literal is
kept as a DNS name.
"""

import ipaddress
from typing import Iterable, List, NamedTuple, Optional, Union

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class SubjectAltNames(NamedTuple):
	ip_addresses: List[IPAddress]
	dns_names: List[str]


def split_host_port(hostport: str) -> Optional[str]:
	"""Return the host part of `host:port` / `[host]:port`, or None when
	`hostport` does not have that shape."""
	if hostport.startswith("["):
		end = hostport.find("]")
		if end < 0 or not hostport[end + 1:].startswith(":"):
			return None
		host = hostport[1:end]
		if "[" in host or "]" in host or "]" in hostport[end + 1:]:
			return None
		return host
	colon = hostport.rfind(":")
	if colon < 0:
		return None
	host = hostport[:colon]
	# an unbracketed host with a colon is an IPv6 literal without a port
	if ":" in host or "[" in host or "]" in host:
		return None
	return host


def parse_ip(host: str) -> Optional[IPAddress]:
	if "%" in host:
		# scoped addresses cannot be encoded in a SAN
		return None
	try:
		ip = ipaddress.ip_address(host)
	except ValueError:
		return None
	# IPv4-mapped IPv6 is encoded as the 4-byte IPv4 address
	if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
		return ip.ipv4_mapped
	return ip


def classify_hosts(hosts: Iterable[str]) -> SubjectAltNames:
	"""Partition `hosts` into IP and DNS buckets, keeping relative order."""
	sans = SubjectAltNames(ip_addresses=[], dns_names=[])
	for host in hosts:
		stripped = split_host_port(host)
		if stripped is not None:
			host = stripped
		elif host.startswith("[") and host.endswith("]") and parse_ip(host[1:-1]) is not None:
			host = host[1:-1]

		ip = parse_ip(host)
		if ip is not None:
			sans.ip_addresses.append(ip)
		else:
			sans.dns_names.append(host)
	return sans
