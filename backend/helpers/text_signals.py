"""
Lexical and link features used by automated content moderation.

Everything here is pure and deterministic: the same text always yields the
same TextSignals, without touching the database.
"""

import html
import re
from collections import Counter
from typing import Optional
from urllib.parse import urlsplit

from models.schemas import TextSignals

URL_PATTERN = re.compile(r"\b((?:https?://|www\.)[^\s<>\"']+)", re.IGNORECASE)
TOKEN_PATTERN = re.compile(r"[A-Za-z0-9_-]{4,}")
TAG_PATTERN = re.compile(r"<[^>]+>")
NBSP_PATTERN = re.compile(r"&nbsp;", re.IGNORECASE)
WHITESPACE_PATTERN = re.compile(r"\s+")
LINE_BREAK_PATTERN = re.compile(r"\n+")
SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)

# Link shorteners and messenger redirects commonly used to mask spam targets
SUSPICIOUS_HOSTS = frozenset(
    {
        "bit.ly",
        "tinyurl.com",
        "t.co",
        "cutt.ly",
        "rebrand.ly",
        "shorturl.at",
        "goo.su",
        "is.gd",
        "t.me",
        "telegram.me",
        "wa.me",
    }
)


def normalize_whitespace(value: str) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    return WHITESPACE_PATTERN.sub(" ", value).strip()


def strip_markup(value: str) -> str:
    """
    Remove HTML tags and entities while keeping line structure.

    Tags become spaces so adjacent words stay separate. Line breaks are kept
    for duplicate-line detection.
    """
    without_tags = TAG_PATTERN.sub(" ", value)
    without_nbsp = NBSP_PATTERN.sub(" ", without_tags)
    return html.unescape(without_nbsp).replace("\r", "")


def extract_urls(value: str) -> list[str]:
    """Extract http(s):// and bare www. URLs."""
    return [match.strip() for match in URL_PATTERN.findall(value)]


def normalize_url_host(raw_url: str) -> Optional[str]:
    """
    Return the lower-cased host of a URL without a leading "www.".

    Returns:
        The host, or None when the URL cannot be parsed.
    """
    with_scheme = raw_url if SCHEME_PATTERN.match(raw_url) else f"https://{raw_url}"
    try:
        hostname = urlsplit(with_scheme).hostname
    except ValueError:
        return None
    if not hostname:
        return None
    return hostname.lower().removeprefix("www.")


def extract_text_signals(raw_text: Optional[str]) -> TextSignals:
    """
    Derive lexical/link signals from raw content text.

    Args:
        raw_text: Title/description/body (or comment text), may contain HTML.

    Returns:
        TextSignals for the rule evaluator.
    """
    stripped = strip_markup(raw_text or "")
    normalized = normalize_whitespace(stripped)

    urls = extract_urls(stripped)
    hosts = [host for host in (normalize_url_host(url) for url in urls) if host]
    suspicious_url_count = sum(1 for host in hosts if host in SUSPICIOUS_HOSTS)
    duplicate_url_count = len(urls) - len({url.lower() for url in urls})

    lines = [
        line
        for line in (
            normalize_whitespace(chunk.lower())
            for chunk in LINE_BREAK_PATTERN.split(stripped)
        )
        if line
    ]
    duplicate_line_count = len(lines) - len(set(lines))

    tokens = TOKEN_PATTERN.findall(normalized.lower())
    token_counts = Counter(tokens)
    repeated_token_count = max(token_counts.values(), default=0)
    unique_token_ratio = (
        round(len(token_counts) / len(tokens), 4) if tokens else 0.0
    )

    return TextSignals(
        text_length=len(normalized),
        token_count=len(tokens),
        unique_token_ratio=unique_token_ratio,
        url_count=len(urls),
        suspicious_url_count=suspicious_url_count,
        duplicate_url_count=duplicate_url_count,
        repeated_token_count=repeated_token_count,
        duplicate_line_count=duplicate_line_count,
    )
