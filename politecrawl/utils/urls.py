"""
URL helpers shared by the fetcher, the parser and the storage sinks.

Normalization is deliberately minimal: URLs are compared as exact strings,
so ``https://a.example`` and ``https://a.example/`` are two different pages,
as are two URLs that differ only in their fragment.
"""

import re
from urllib.parse import urlparse

CRAWLABLE_SCHEMES = ('http', 'https')

# Accepts bare hosts ("example.com/path") as well as http(s) URLs.
SEED_URL_PATTERN = re.compile(r'^(https?://)?([\w.-]+)+(:\d+)?(/([\w/_\-.]*)?)?$')

_UNSAFE_FILENAME_CHARS = re.compile(r'[^a-zA-Z0-9]')


def ensure_scheme(url: str, default_scheme: str = 'http') -> str:
    """Prefix ``url`` with ``default_scheme`` when it has no http(s) scheme."""
    url = url.strip()
    if url.startswith('http://') or url.startswith('https://'):
        return url
    return f"{default_scheme}://{url}"


def is_valid_seed(url: str) -> bool:
    """Check a user-supplied seed against SEED_URL_PATTERN."""
    return bool(SEED_URL_PATTERN.match(url.strip()))


def is_crawlable(url: str) -> bool:
    """True for absolute http(s) URLs with a host."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in CRAWLABLE_SCHEMES and bool(parsed.netloc)


def extract_domain(url: str) -> str:
    """Host of ``url`` without a leading ``www.``; ``unknown`` if there is none."""
    try:
        host = urlparse(url).hostname
    except ValueError:
        return "unknown"
    if not host:
        return "unknown"
    if host.startswith('www.'):
        host = host[4:]
    return host


def sanitize_filename(url: str) -> str:
    """Replace every non-alphanumeric character with an underscore."""
    return _UNSAFE_FILENAME_CHARS.sub('_', url)
