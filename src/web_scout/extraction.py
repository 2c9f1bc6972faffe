"""Pure extraction and URL normalization utilities."""

from __future__ import annotations

import re
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from .models import Platform, SocialLink
from .validation import is_valid_email

MAILTO_REGEX = re.compile(r"mailto:([A-Z0-9._%+\-]+@[A-Z0-9.\-]+\.[A-Z]{2,})", re.IGNORECASE)
EMAIL_REGEX = re.compile(r"\b[A-Z0-9._%+\-]+@[A-Z0-9.\-]+\.[A-Z]{2,}\b", re.IGNORECASE)

# Asset names such as logo@2x.png match the email shape.
ASSET_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".css", ".js")

GENERIC_TOKENS = ("info", "support", "sales", "hello", "contact", "admin", "service", "help", "team")

HOSTING_SUFFIXES = (
    "myshopify.com",
    "shopify.com",
    "shopifycloud.com",
    "wixsite.com",
    "webflow.io",
    "square.site",
    "squarespace.com",
    "weebly.com",
    "bigcartel.com",
)

_HANDLE = r"[A-Za-z0-9._\-]+"

# Order matters: the first pattern to claim a normalized URL decides its platform.
SOCIAL_PATTERNS: list[tuple[Platform, re.Pattern[str]]] = [
    (Platform.INSTAGRAM, re.compile(rf"https?://(?:www\.)?instagram\.com/{_HANDLE}", re.I)),
    (Platform.TWITTER, re.compile(rf"https?://(?:www\.)?(?:twitter|x)\.com/{_HANDLE}", re.I)),
    (Platform.FACEBOOK, re.compile(rf"https?://(?:www\.|m\.)?facebook\.com/{_HANDLE}", re.I)),
    (
        Platform.LINKEDIN,
        re.compile(rf"https?://(?:[a-z]{{2}}\.|www\.)?linkedin\.com/(?:company|in|school)/{_HANDLE}", re.I),
    ),
    (Platform.TIKTOK, re.compile(rf"https?://(?:www\.)?tiktok\.com/@{_HANDLE}", re.I)),
    (
        Platform.YOUTUBE,
        re.compile(
            r"https?://(?:www\.)?(?:youtube\.com/(?:channel/|c/|user/|@)[A-Za-z0-9._\-]+"
            r"|youtu\.be/[A-Za-z0-9_\-]+)",
            re.I,
        ),
    ),
    (Platform.PINTEREST, re.compile(rf"https?://(?:[a-z]{{2}}\.|www\.)?pinterest\.com/{_HANDLE}", re.I)),
    (Platform.THREADS, re.compile(rf"https?://(?:www\.)?threads\.(?:net|com)/@{_HANDLE}", re.I)),
    (Platform.SNAPCHAT, re.compile(rf"https?://(?:www\.)?snapchat\.com/add/{_HANDLE}", re.I)),
    (Platform.REDDIT, re.compile(rf"https?://(?:www\.|old\.)?reddit\.com/(?:r|u|user)/{_HANDLE}", re.I)),
    (
        Platform.WHATSAPP,
        re.compile(r"https?://(?:wa\.me/\d+|(?:api\.)?whatsapp\.com/send|chat\.whatsapp\.com/[A-Za-z0-9]+)", re.I),
    ),
    (Platform.TELEGRAM, re.compile(rf"https?://(?:t\.me|telegram\.me)/{_HANDLE}", re.I)),
    (
        Platform.DISCORD,
        re.compile(rf"https?://(?:www\.)?(?:discord\.gg|discord\.com/invite)/{_HANDLE}", re.I),
    ),
    (Platform.LINKTREE, re.compile(rf"https?://(?:www\.)?linktr\.ee/{_HANDLE}", re.I)),
]

CANDIDATE_KEYWORDS = (
    "contact",
    "support",
    "about",
    "team",
    "social",
    "follow",
    *(platform.value for platform in Platform),
)


def canonicalize_url(href: str, base: str) -> str:
    """Resolve relative URLs and strip hash fragments."""
    return urljoin(base, href).split("#", maxsplit=1)[0]


def domain_from_url(url: str) -> str:
    """Extract lowercase hostname from URL."""
    return urlparse(url).netloc.lower()


def origin_of(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def dedupe_preserve_order(items: list[str]) -> list[str]:
    """Dedupe values while preserving first-seen order."""
    output: list[str] = []
    seen: set[str] = set()
    for item in items:
        normalized = item.split("#", maxsplit=1)[0]
        if normalized in seen:
            continue
        seen.add(normalized)
        output.append(item)
    return output


def _is_plausible_email(address: str) -> bool:
    return is_valid_email(address) and not address.endswith(ASSET_SUFFIXES)


def extract_emails(html: str) -> list[str]:
    """Return lowercase emails from mailto targets and free text, first-seen order."""
    text = html or ""
    found = [match.group(1) for match in MAILTO_REGEX.finditer(text)]
    found.extend(match.group(0) for match in EMAIL_REGEX.finditer(text))
    emails = dedupe_preserve_order([address.lower() for address in found])
    return [address for address in emails if _is_plausible_email(address)]


def normalize_social_url(url: str) -> str | None:
    """Reduce a profile URL to scheme, host and path."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.hostname:
        return None
    return f"{parsed.scheme.lower()}://{parsed.hostname}{parsed.path}"


def extract_socials(html: str) -> list[SocialLink]:
    """Return social profile links in platform order, one per normalized URL."""
    text = html or ""
    socials: list[SocialLink] = []
    seen: set[str] = set()
    for platform, pattern in SOCIAL_PATTERNS:
        for match in pattern.finditer(text):
            normalized = normalize_social_url(match.group(0))
            if normalized is None or normalized in seen:
                continue
            seen.add(normalized)
            socials.append(SocialLink(platform=platform, url=normalized))
    return socials


def merge_socials(*groups: list[SocialLink] | tuple[SocialLink, ...]) -> list[SocialLink]:
    output: list[SocialLink] = []
    seen: set[str] = set()
    for group in groups:
        for social in group:
            if social.url in seen:
                continue
            seen.add(social.url)
            output.append(social)
    return output


def looks_generic(local_part: str) -> bool:
    """True when the local part contains a role-account token."""
    lowered = local_part.lower()
    return any(token in lowered for token in GENERIC_TOKENS)


def _local_part(email: str) -> str:
    return email.split("@", maxsplit=1)[0]


def pick_best_email(emails: list[str]) -> str | None:
    """Prefer personal-looking addresses; stable for ties."""
    if not emails:
        return None
    return sorted(emails, key=lambda email: looks_generic(_local_part(email)))[0]


def _title(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


def derive_first_name(email: str | None) -> str | None:
    """Guess a first name from the local part of an email."""
    if not email:
        return None
    local = _local_part(email)
    for part in re.split(r"[._\-+]", local):
        if re.fullmatch(r"[A-Za-z]{2,}", part) and not looks_generic(part):
            return _title(part)
    if re.fullmatch(r"[A-Za-z]{2,}", local):
        return _title(local)
    return None


def derive_brand_name(hostname: str) -> str:
    """Turn ``www.my-cool-store.myshopify.com`` into ``My Cool Store``."""
    if not hostname:
        return ""
    host = hostname.lower()
    if host.startswith("www."):
        host = host[4:]
    for suffix in HOSTING_SUFFIXES:
        if host == suffix or host.endswith("." + suffix):
            labels = host.split(".")
            index = len(labels) - len(suffix.split(".")) - 1
            if index >= 0:
                host = labels[index]
            break
    if "." in host:
        host = host.split(".")[0]
    name = " ".join(_title(token) for token in re.split(r"[-_]+", host) if token)
    return name or _title(host)


def find_candidate_links(html: str, base_url: str, limit: int) -> list[str]:
    """Same-origin links likely to carry contact or social details."""
    parsed_base = urlparse(base_url)
    origin = origin_of(base_url)
    links: list[str] = []
    if parsed_base.path not in {"", "/"}:
        links.append(origin + "/")

    soup = BeautifulSoup(html or "", "html.parser")
    for anchor in soup.find_all("a", href=True):
        href = str(anchor["href"]).strip()
        if not href or href.startswith("#") or href.lower().startswith(("mailto:", "tel:", "javascript:")):
            continue
        absolute = canonicalize_url(href, base_url)
        parsed = urlparse(absolute)
        if parsed.scheme not in {"http", "https"} or parsed.netloc.lower() != parsed_base.netloc.lower():
            continue
        haystack = f"{parsed.path} {anchor.get_text(' ', strip=True)}".lower()
        if not any(keyword in haystack for keyword in CANDIDATE_KEYWORDS):
            continue
        if absolute.rstrip("/") == base_url.split("#", maxsplit=1)[0].rstrip("/"):
            continue
        links.append(absolute)
    return dedupe_preserve_order(links)[:limit]
