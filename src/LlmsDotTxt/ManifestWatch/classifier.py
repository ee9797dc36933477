# === NAVMAP v1 ===
# {
#   "module": "LlmsDotTxt.ManifestWatch.classifier",
#   "purpose": "Sniff probe responses into CONFIRMED / REJECTED / ABSENT outcomes",
#   "sections": [
#     {
#       "id": "classificationresult",
#       "name": "ClassificationResult",
#       "anchor": "class-classificationresult",
#       "kind": "class"
#     },
#     {
#       "id": "is-success-status",
#       "name": "is_success_status",
#       "anchor": "function-is-success-status",
#       "kind": "function"
#     },
#     {
#       "id": "is-html-content-type",
#       "name": "is_html_content_type",
#       "anchor": "function-is-html-content-type",
#       "kind": "function"
#     },
#     {
#       "id": "sniff-markup",
#       "name": "sniff_markup",
#       "anchor": "function-sniff-markup",
#       "kind": "function"
#     },
#     {
#       "id": "classify-headers",
#       "name": "classify_headers",
#       "anchor": "function-classify-headers",
#       "kind": "function"
#     },
#     {
#       "id": "classify-response",
#       "name": "classify_response",
#       "anchor": "function-classify-response",
#       "kind": "function"
#     },
#     {
#       "id": "classify-failure",
#       "name": "classify_failure",
#       "anchor": "function-classify-failure",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Payload classification helpers for manifest probes.

Many hosts answer an unknown path with ``200 OK`` and a generic HTML landing
or error page, and some servers label plain text as something else. Neither
the status code nor the ``Content-Type`` header is trusted on its own:

1. Non-2xx status (or a transport failure) → ``ABSENT``.
2. ``Content-Type`` containing ``text/html`` or ``application/xhtml`` →
   ``REJECTED`` without reading the body.
3. Body starting (after leading whitespace) with ``<!``, ``<html`` or
   ``<?xml`` → ``REJECTED``.
4. Anything else → ``CONFIRMED``; the body is kept verbatim.

Stages 1–2 are exposed separately through :func:`classify_headers` so the
fetcher can avoid downloading a body that the headers already disqualify.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

import httpx

from LlmsDotTxt.ManifestWatch.classifications import Classification, ReasonCode

_HTML_CONTENT_TYPES = ("text/html", "application/xhtml")
_MARKUP_PREFIXES = ("<!", "<html", "<?xml")


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of a single probe of a candidate manifest URL."""

    classification: Classification
    reason: ReasonCode
    url: Optional[str] = None
    status: Optional[int] = None
    content_type: Optional[str] = None
    content: Optional[str] = None
    detail: Optional[str] = None

    @property
    def confirmed(self) -> bool:
        return self.classification is Classification.CONFIRMED

    @property
    def rejected(self) -> bool:
        return self.classification is Classification.REJECTED

    def with_url(self, url: str) -> "ClassificationResult":
        return ClassificationResult(
            classification=self.classification,
            reason=self.reason,
            url=url,
            status=self.status,
            content_type=self.content_type,
            content=self.content,
            detail=self.detail,
        )

    def to_dict(self) -> dict:
        """Serialise for CLI output and structured logs (content omitted)."""

        return {
            "classification": self.classification.value,
            "reason": self.reason.value,
            "url": self.url,
            "status": self.status,
            "content_type": self.content_type,
            "content_length": len(self.content) if self.content is not None else None,
            "detail": self.detail,
        }


def is_success_status(status: Optional[int]) -> bool:
    return status is not None and 200 <= int(status) <= 299


def is_html_content_type(content_type: Optional[str]) -> bool:
    ctype = (content_type or "").lower()
    return any(marker in ctype for marker in _HTML_CONTENT_TYPES)


def sniff_markup(body: Optional[str]) -> bool:
    """Return ``True`` when ``body`` looks like an HTML or XML document."""

    if not body:
        return False
    prefix = body.lstrip().lstrip("\ufeff").lstrip()[:16].lower()
    return prefix.startswith(_MARKUP_PREFIXES)


def classify_headers(
    status: Optional[int], content_type: Optional[str]
) -> Optional[ClassificationResult]:
    """Classify from status and headers alone.

    Returns ``None`` when the body has to be inspected to decide.
    """

    if not is_success_status(status):
        return ClassificationResult(
            Classification.ABSENT,
            ReasonCode.HTTP_STATUS,
            status=status,
            content_type=content_type,
        )
    if is_html_content_type(content_type):
        return ClassificationResult(
            Classification.REJECTED,
            ReasonCode.HTML_CONTENT_TYPE,
            status=status,
            content_type=content_type,
        )
    return None


def classify_response(
    status: Optional[int], content_type: Optional[str], body: Optional[str]
) -> ClassificationResult:
    """Classify a complete response as ``CONFIRMED``/``REJECTED``/``ABSENT``."""

    decided = classify_headers(status, content_type)
    if decided is not None:
        return decided
    if sniff_markup(body):
        return ClassificationResult(
            Classification.REJECTED,
            ReasonCode.MARKUP_BODY,
            status=status,
            content_type=content_type,
        )
    return ClassificationResult(
        Classification.CONFIRMED,
        ReasonCode.OK,
        status=status,
        content_type=content_type,
        content=body if body is not None else "",
    )


def classify_failure(exc: BaseException) -> ClassificationResult:
    """Map a transport failure to ``ABSENT`` with a timeout-aware reason."""

    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)):
        reason = ReasonCode.TIMEOUT
    else:
        reason = ReasonCode.REQUEST_EXCEPTION
    return ClassificationResult(
        Classification.ABSENT,
        reason,
        detail=f"{type(exc).__name__}: {exc}",
    )


__all__ = (
    "ClassificationResult",
    "is_success_status",
    "is_html_content_type",
    "sniff_markup",
    "classify_headers",
    "classify_response",
    "classify_failure",
)
