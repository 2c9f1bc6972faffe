"""Validation, input normalization, and runtime guardrails."""

from __future__ import annotations

import re
import socket
from pathlib import Path
from urllib.parse import urlparse

import dns.resolver

from .errors import ConfigError

EMAIL_PATTERN = re.compile(r"^[A-Z0-9._%+\-]+@[A-Z0-9.\-]+\.[A-Z]{2,}$", re.IGNORECASE)
IPV4_PATTERN = re.compile(r"^\d{1,3}(?:\.\d{1,3}){3}$")
TLD_PATTERN = re.compile(r"^[a-z]{2,24}$")

# Placeholder tokens seen in pasted spreadsheets, and free-mail roots that
# never host a business site.
DENIED_HOSTS = frozenset(
    {
        "domain_url",
        "emails",
        "products_sold",
        "gmail.com",
        "googlemail.com",
        "outlook.com",
        "hotmail.com",
        "yahoo.com",
        "icloud.com",
    }
)


def is_supported_url(url: str) -> bool:
    """Allow only absolute HTTP(S) URLs with a hostname."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def is_ipv4_host(host: str) -> bool:
    return bool(IPV4_PATTERN.match(host))


def is_valid_domain_host(hostname: str) -> bool:
    """Return True for hosts that look like a real, scoutable domain."""
    if not hostname:
        return False
    host = hostname.lower()
    if re.search(r"[\s_]", host):
        return False
    if is_ipv4_host(host):
        return False
    labels = [label for label in host.split(".") if label]
    if len(labels) < 2:
        return False
    if not TLD_PATTERN.match(labels[-1]):
        return False
    return host not in DENIED_HOSTS


def normalize_domain(value: str) -> str | None:
    """Normalize a domain or URL to ``scheme://host``; None when it is not usable."""
    token = value.strip()
    if not token:
        return None
    if not re.match(r"^https?://", token, re.IGNORECASE):
        token = f"https://{token}"
    try:
        parsed = urlparse(token)
        host = parsed.hostname or ""
    except ValueError:
        return None
    if not is_valid_domain_host(host):
        return None
    return f"{parsed.scheme.lower()}://{host}"


def to_origin(url: str) -> str:
    """Reduce a URL to ``scheme://host``, returning the input unchanged if it cannot be parsed."""
    try:
        parsed = urlparse(url.strip())
        host = parsed.hostname
    except ValueError:
        return url
    if not parsed.scheme or not host:
        return url
    return f"{parsed.scheme}://{host}"


def clean_token(value: str) -> str:
    """Strip whitespace and wrapping quotes from a pasted token."""
    return re.sub(r"^[\"'`\s]+|[\"'`\s]+$", "", value)


def clean_email(value: str) -> str:
    """Strip a ``mailto:`` prefix and wrapping punctuation from an email token."""
    token = re.sub(r"^mailto:", "", value.strip(), flags=re.IGNORECASE)
    return re.sub(r"^[\"'`<(\[]+|[\"'`>)\]]+$", "", token)


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value or ""))


def load_lines_from_file(path: str) -> list[str]:
    """Load non-empty lines from a UTF-8 text file."""
    content = Path(path).read_text(encoding="utf-8")
    return [line.strip() for line in content.splitlines() if line.strip()]


def validate_runtime_constraints(
    *,
    workers: int,
    quick_batch_workers: int,
    candidate_limit: int,
    candidate_fetch_limit: int,
    max_batch_items: int,
    max_quick_batch: int,
    timeouts: dict[str, float],
    ttls: dict[str, float],
) -> None:
    """Validate runtime configuration and raise ConfigError on invalid values."""
    if workers < 1:
        raise ConfigError("--workers must be >= 1.")
    if quick_batch_workers < 1:
        raise ConfigError("quick batch workers must be >= 1.")
    if candidate_limit < 0 or candidate_fetch_limit < 0:
        raise ConfigError("candidate limits must be >= 0.")
    if candidate_fetch_limit > candidate_limit:
        raise ConfigError("candidate fetch limit cannot exceed the candidate limit.")
    if max_batch_items < 1 or max_quick_batch < 1:
        raise ConfigError("batch size caps must be >= 1.")
    for name, value in timeouts.items():
        if value <= 0:
            raise ConfigError(f"{name} must be > 0.")
    for name, value in ttls.items():
        if value <= 0:
            raise ConfigError(f"{name} must be > 0.")


def mx_check(email: str) -> bool:
    """Return True when target domain has MX or A record."""
    try:
        domain = email.split("@", maxsplit=1)[1]
    except IndexError:
        return False
    try:
        answers = dns.resolver.resolve(domain, "MX", lifetime=8)
        return bool(answers)
    except (dns.resolver.NoAnswer, dns.resolver.NXDOMAIN, dns.resolver.NoNameservers):
        try:
            socket.gethostbyname(domain)
            return True
        except OSError:
            return False
    except dns.exception.DNSException:
        return False
