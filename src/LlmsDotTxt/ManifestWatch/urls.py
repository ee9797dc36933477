# === NAVMAP v1 ===
# {
#   "module": "LlmsDotTxt.ManifestWatch.urls",
#   "purpose": "Resolve the candidate llms.txt URL and domain key for a page URL",
#   "sections": [
#     {
#       "id": "is-http-url",
#       "name": "is_http_url",
#       "anchor": "function-is-http-url",
#       "kind": "function"
#     },
#     {
#       "id": "page-domain",
#       "name": "page_domain",
#       "anchor": "function-page-domain",
#       "kind": "function"
#     },
#     {
#       "id": "origin-of",
#       "name": "_origin_of",
#       "anchor": "function-origin-of",
#       "kind": "function"
#     },
#     {
#       "id": "manifest-url-for",
#       "name": "manifest_url_for",
#       "anchor": "function-manifest-url-for",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""URL helpers for locating the companion ``llms.txt`` manifest of a page.

Responsibilities
----------------
- Decide whether a page URL is eligible for network detection
  (:func:`is_http_url`).
- Derive the candidate manifest URL by replacing the last path segment of the
  page with ``llms.txt`` (:func:`manifest_url_for`).
- Extract the host key used to match history entries against tabs
  (:func:`page_domain`).

Rules
-----
1. Only ``http`` and ``https`` pages produce a candidate; everything else
   (``file:``, ``about:``, ``chrome:`` ...) is *not applicable*.
2. ``https://a.com/docs/page.html`` → ``https://a.com/docs/llms.txt``;
   ``https://a.com/docs/`` → ``https://a.com/docs/llms.txt``;
   ``https://a.com`` → ``https://a.com/llms.txt``.
3. Query strings and fragments never carry over to the candidate.
4. The origin is rebuilt from the lowercased scheme and host; explicit
   non-default ports are preserved, default ports are dropped.

Textually different URLs are never merged (no query or case folding of the
path), so two spellings of the same page may map to distinct candidates.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import SplitResult, urlsplit

__all__ = ("MANIFEST_LEAF", "HTTP_SCHEMES", "is_http_url", "page_domain", "manifest_url_for")

MANIFEST_LEAF = "llms.txt"
HTTP_SCHEMES = frozenset({"http", "https"})
_DEFAULT_PORTS = {"http": 80, "https": 443}


def _split(url: object) -> Optional[SplitResult]:
    if not isinstance(url, str) or not url.strip():
        return None
    try:
        parts = urlsplit(url.strip())
        # Accessing .port validates the netloc and raises on garbage ports.
        parts.port
    except ValueError:
        return None
    return parts


def is_http_url(url: object) -> bool:
    """Return ``True`` when ``url`` parses as an absolute HTTP(S) URL."""

    parts = _split(url)
    if parts is None:
        return False
    return parts.scheme.lower() in HTTP_SCHEMES and bool(parts.hostname)


def page_domain(url: object) -> Optional[str]:
    """Return the lowercase hostname of ``url`` or ``None`` when it has none.

    Examples
    --------
    >>> page_domain("https://Docs.Example.com:8443/guide")
    'docs.example.com'
    >>> page_domain("about:blank") is None
    True
    """

    parts = _split(url)
    if parts is None or not parts.hostname:
        return None
    return parts.hostname.lower()


def _origin_of(parts: SplitResult) -> str:
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if ":" in host:
        host = f"[{host}]"
    port = parts.port
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        host = f"{host}:{port}"
    return f"{scheme}://{host}"


def manifest_url_for(page_url: object) -> Optional[str]:
    """Return the candidate ``llms.txt`` URL for ``page_url``.

    ``None`` means *not applicable*: the page is not an HTTP(S) URL or could
    not be parsed.

    Examples
    --------
    >>> manifest_url_for("https://a.com/docs/page.html")
    'https://a.com/docs/llms.txt'
    >>> manifest_url_for("https://a.com/")
    'https://a.com/llms.txt'
    >>> manifest_url_for("file:///tmp/index.html") is None
    True
    """

    parts = _split(page_url)
    if parts is None or parts.scheme.lower() not in HTTP_SCHEMES or not parts.hostname:
        return None

    path = parts.path or "/"
    directory = path.rsplit("/", 1)[0] or "/"
    if not directory.endswith("/"):
        directory += "/"
    return f"{_origin_of(parts)}{directory}{MANIFEST_LEAF}"
