"""
Input cleaning for user-supplied demo content.
"""
import logging
import re
from typing import Optional
from urllib.parse import urlparse

from lxml.etree import ParserError
from lxml_html_clean import Cleaner

logger = logging.getLogger(__name__)

ALLOWED_TAGS = frozenset([
    "p", "br", "strong", "em", "u", "h1", "h2", "h3", "h4", "h5", "h6",
    "ul", "ol", "li", "a", "img", "blockquote", "code", "pre",
    "div", "span", "table", "thead", "tbody", "tr", "td", "th",
])

ALLOWED_ATTRS = frozenset([
    "href", "src", "alt", "title", "class", "id", "target", "rel",
    "width", "height",
])

_cleaner = Cleaner(
    scripts=True,
    javascript=True,
    comments=True,
    style=True,
    inline_style=True,
    links=True,
    meta=True,
    page_structure=True,
    processing_instructions=True,
    embedded=True,
    frames=True,
    forms=True,
    annoying_tags=True,
    allow_tags=ALLOWED_TAGS,
    remove_unknown_tags=False,
    safe_attrs_only=True,
    safe_attrs=ALLOWED_ATTRS,
)

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def sanitize_html(html: Optional[str]) -> str:
    """Strips scripts, event handlers and any tag or attribute outside the allow-list."""
    if not html or not isinstance(html, str) or not html.strip():
        return ""
    try:
        return _cleaner.clean_html(html)
    except ParserError as e:
        # lxml rejects documents that parse to nothing (e.g. only comments).
        logger.debug(f"Nothing left to sanitize: {e}")
        return ""


def is_valid_url(url: Optional[str]) -> bool:
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def normalize_url(url: Optional[str]) -> Optional[str]:
    """Prepends https:// to schemeless URLs. Blank input becomes None."""
    if url is None:
        return None
    url = url.strip()
    if not url:
        return None
    if not re.match(r"^[a-zA-Z][a-zA-Z0-9+.-]*://", url):
        url = f"https://{url}"
    return url


def sanitize_string(value: Optional[str], max_length: Optional[int] = None) -> str:
    """Trims, removes control characters and truncates to max_length."""
    if not value or not isinstance(value, str):
        return ""
    cleaned = _CONTROL_CHARS.sub("", value.strip())
    if max_length and len(cleaned) > max_length:
        cleaned = cleaned[:max_length]
    return cleaned


if __name__ == '__main__':
    dirty = '<p onclick="steal()">Hello <script>alert(1)</script><strong>world</strong></p><iframe src="x"></iframe>'
    print(f"Sanitized: {sanitize_html(dirty)}")
    print(f"normalize_url('example.com') -> {normalize_url('example.com')}")
    print(f"is_valid_url('ftp://example.com') -> {is_valid_url('ftp://example.com')}")
