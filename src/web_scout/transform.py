"""String rewrites that make fetched HTML embeddable behind the proxy."""

from __future__ import annotations

import re
from urllib.parse import quote, urljoin, urlparse

from .extraction import origin_of

HEAD_OPEN = re.compile(r"<head(\s[^>]*)?>", re.IGNORECASE)
CSP_META = re.compile(
    r"<meta[^>]+http-equiv\s*=\s*[\"']?Content-Security-Policy[\"']?[^>]*>",
    re.IGNORECASE,
)
ANCHOR_HREF = re.compile(r"(<a\b[^>]*?\shref\s*=\s*)([\"'])(.*?)(\2)", re.IGNORECASE | re.DOTALL)
FORM_ACTION = re.compile(r"(<form\b[^>]*?\saction\s*=\s*)([\"'])(.*?)(\2)", re.IGNORECASE | re.DOTALL)

PASSTHROUGH_PREFIXES = ("#", "javascript:", "data:", "mailto:", "tel:")


def inject_base(html: str, origin: str) -> str:
    """Insert ``<base href>`` after the opening head tag so relative assets resolve."""
    base_tag = f'<base href="{origin}/">'
    if HEAD_OPEN.search(html):
        return HEAD_OPEN.sub(lambda match: f"{match.group(0)}\n{base_tag}", html, count=1)
    return f"{base_tag}\n{html}"


def strip_csp_meta(html: str) -> str:
    return CSP_META.sub("", html)


def proxify_href(href: str, origin: str, proxy_path: str = "/proxy") -> str:
    """Route a navigation target through the proxy; leave in-page and script targets alone."""
    trimmed = href.strip()
    if not trimmed or trimmed.lower().startswith(PASSTHROUGH_PREFIXES):
        return href
    try:
        absolute = urljoin(origin + "/", trimmed)
    except ValueError:
        return href
    if urlparse(absolute).scheme not in {"http", "https"}:
        return href
    return f"{proxy_path}?url={quote(absolute, safe='')}"


def rewrite_links(html: str, origin: str, proxy_path: str = "/proxy") -> str:
    def _rewrite(match: re.Match[str]) -> str:
        prefix, quote_char, value, _ = match.groups()
        return f"{prefix}{quote_char}{proxify_href(value, origin, proxy_path)}{quote_char}"

    html = ANCHOR_HREF.sub(_rewrite, html)
    return FORM_ACTION.sub(_rewrite, html)


def transform_html(html: str, target_url: str, proxy_path: str = "/proxy") -> str:
    """Apply base injection, CSP stripping, and link rewriting, in that order."""
    origin = origin_of(target_url)
    transformed = inject_base(html, origin)
    transformed = strip_csp_meta(transformed)
    return rewrite_links(transformed, origin, proxy_path)
