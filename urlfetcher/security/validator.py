"""SSRF-defense URL validation.

Each URL goes through a fixed sequence of checks and the first failing check
decides the rejection reason:

1. suspicious characters (``%``, ``@``, ``\\``) in the raw string
2. absolute URL parsing
3. protocol allowlist (http, https)
4. hostname blocklist
5. private/loopback IPv4 literals
6. cloud metadata hostname patterns

Hosts ending in a numeric label are IPv4 hosts. They are normalized to a
dotted quad (``2130706433``, ``127.1`` and ``0x7f.0.0.1`` all become
``127.0.0.1``) before checks 4 to 6, and a numeric host that does not parse
is rejected. DNS names that resolve to private addresses are not caught here.
"""

from __future__ import annotations

import ipaddress
import re
import string
from dataclasses import dataclass, field
from urllib.parse import urlsplit, urlunsplit

import structlog

logger = structlog.get_logger(__name__)

ALLOWED_SCHEMES = frozenset({"http", "https"})

BLOCKED_HOSTNAMES = frozenset(
    {
        "localhost",
        "127.0.0.1",
        "::1",
        "0.0.0.0",  # nosec B104
        "metadata.google.internal",
        "169.254.169.254",
        "169.254.170.2",
    }
)

METADATA_IPS = frozenset({"169.254.169.254", "169.254.170.2"})

BLOCKED_IPV4_NETWORKS = (
    ipaddress.IPv4Network("10.0.0.0/8"),
    ipaddress.IPv4Network("172.16.0.0/12"),
    ipaddress.IPv4Network("192.168.0.0/16"),
    ipaddress.IPv4Network("169.254.0.0/16"),
    ipaddress.IPv4Network("127.0.0.0/8"),
)

_SUSPICIOUS_CHARS = re.compile(r"[%@\\]")
_DOTTED_QUAD = re.compile(r"^(\d{1,3}\.){3}\d{1,3}$")
_IPV4_DIGITS = {10: string.digits, 8: string.octdigits, 16: string.hexdigits}
_METADATA_PATTERNS = (
    re.compile(r"^metadata\."),
    re.compile(r"\.internal$"),
    re.compile(r"\.local$"),
)

SUSPICIOUS_CHARS_ERROR = "URL contains suspicious characters. Characters %, @, \\ are not allowed."
PRIVATE_IP_ERROR = "Private/internal IP addresses are not allowed."
METADATA_ERROR = "Cloud metadata servers are not allowed."


@dataclass(frozen=True)
class UrlValidationResult:
    """Outcome of validating a single URL."""

    url: str
    is_valid: bool
    sanitized_url: str | None = None
    error: str | None = None

    @classmethod
    def accepted(cls, url: str, sanitized_url: str) -> UrlValidationResult:
        return cls(url=url, is_valid=True, sanitized_url=sanitized_url)

    @classmethod
    def rejected(cls, url: str, error: str) -> UrlValidationResult:
        return cls(url=url, is_valid=False, error=error)


@dataclass
class BatchValidation:
    """Partition of a URL batch into accepted canonical URLs and rejections."""

    valid_urls: list[str] = field(default_factory=list)
    invalid_urls: list[dict[str, str]] = field(default_factory=list)

    @property
    def has_invalid(self) -> bool:
        return bool(self.invalid_urls)


def _parse_ipv4_number(part: str) -> int:
    if part[:2].lower() == "0x":
        digits, radix = part[2:], 16
    elif len(part) > 1 and part.startswith("0"):
        digits, radix = part[1:], 8
    else:
        digits, radix = part, 10
    if not all(c in _IPV4_DIGITS[radix] for c in digits):
        raise ValueError("Invalid IPv4 address")
    if not digits:
        return 0
    return int(digits, radix)


def _ends_in_number(labels: list[str]) -> bool:
    last = labels[-1]
    if last.isascii() and last.isdigit():
        return True
    return last[:2].lower() == "0x" and all(c in string.hexdigits for c in last[2:])


def normalize_ipv4_host(hostname: str) -> str | None:
    """Return the dotted quad for an IPv4 host in any form a resolver accepts.

    Decimal, octal (``0177``) and hex (``0x7f``) parts are allowed, as are one to
    four parts, with the last part filling the remaining bytes. Returns None for
    hostnames that are not IPv4 hosts at all and raises ValueError for numeric
    hosts that are out of range or malformed.
    """
    labels = hostname.split(".")
    if len(labels) > 1 and labels[-1] == "":
        labels.pop()
    if not labels[-1] or not _ends_in_number(labels):
        return None
    if len(labels) > 4 or "" in labels:
        raise ValueError("Invalid IPv4 address")

    numbers = [_parse_ipv4_number(label) for label in labels]
    *leading, last = numbers
    if any(n > 255 for n in leading) or last >= 256 ** (5 - len(numbers)):
        raise ValueError("Invalid IPv4 address")

    value = last
    for index, number in enumerate(leading):
        value += number * 256 ** (3 - index)
    return str(ipaddress.IPv4Address(value))


def is_private_ipv4(hostname: str) -> bool:
    """Return True if hostname is a dotted-quad literal in a blocked range."""
    if not _DOTTED_QUAD.match(hostname):
        return False
    try:
        address = ipaddress.IPv4Address(hostname)
    except ValueError:
        return False
    return any(address in network for network in BLOCKED_IPV4_NETWORKS)


def is_cloud_metadata_host(hostname: str) -> bool:
    """Return True if hostname looks like a cloud metadata endpoint."""
    if hostname in METADATA_IPS:
        return True
    return any(pattern.search(hostname) for pattern in _METADATA_PATTERNS)


def canonicalize_url(url: str, hostname: str | None = None) -> str:
    """Re-serialize a URL without its fragment and with an explicit root path.

    When ``hostname`` is given it replaces the URL's host, keeping any port.
    """
    parts = urlsplit(url.strip())
    path = parts.path or "/"
    netloc = parts.netloc
    if hostname is not None:
        netloc = hostname if parts.port is None else f"{hostname}:{parts.port}"
    elif "@" not in netloc:
        netloc = netloc.lower()
    return urlunsplit((parts.scheme.lower(), netloc, path, parts.query, ""))


class UrlValidator:
    """Classifies URLs as safe to fetch or rejected with a reason."""

    def validate_url(self, url: str) -> UrlValidationResult:
        """Validate one URL, short-circuiting on the first failed check."""
        if _SUSPICIOUS_CHARS.search(url):
            return self._reject(url, SUSPICIOUS_CHARS_ERROR)

        try:
            parts = urlsplit(url.strip())
            # Accessing .port validates the port component.
            _ = parts.port
        except ValueError as e:
            return self._reject(url, f"Invalid URL format: {e}")

        if not parts.scheme:
            return self._reject(url, "Invalid URL format: Invalid URL")

        scheme = parts.scheme.lower()
        if scheme not in ALLOWED_SCHEMES:
            return self._reject(
                url,
                f"Protocol '{scheme}:' is not allowed. "
                "Only http:// and https:// are permitted.",
            )

        hostname = (parts.hostname or "").lower()
        if not hostname:
            return self._reject(url, "Invalid URL format: Invalid URL")
        try:
            ipv4_host = normalize_ipv4_host(hostname)
        except ValueError:
            return self._reject(url, "Invalid URL format: Invalid IPv4 address")
        if ipv4_host is not None:
            hostname = ipv4_host

        if hostname in BLOCKED_HOSTNAMES:
            return self._reject(url, f"Hostname '{hostname}' is not allowed.")

        if is_private_ipv4(hostname):
            return self._reject(url, PRIVATE_IP_ERROR)

        if is_cloud_metadata_host(hostname):
            return self._reject(url, METADATA_ERROR)

        return UrlValidationResult.accepted(url, canonicalize_url(url, ipv4_host))

    def validate_urls(self, urls: list[str]) -> BatchValidation:
        """Validate every URL in a batch; each input lands in exactly one bucket."""
        batch = BatchValidation()
        for url in urls:
            result = self.validate_url(url)
            if result.is_valid and result.sanitized_url is not None:
                batch.valid_urls.append(result.sanitized_url)
            else:
                batch.invalid_urls.append({"url": url, "error": result.error or "Invalid URL"})
        return batch

    def _reject(self, url: str, error: str) -> UrlValidationResult:
        logger.warning("url_validation_failed", url=url, error=error)
        return UrlValidationResult.rejected(url, error)
