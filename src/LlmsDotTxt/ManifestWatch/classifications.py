"""Classification enums shared across the manifest detection pipeline."""

from __future__ import annotations

from enum import Enum


class Classification(Enum):
    """Canonical outcomes of a manifest probe."""

    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    ABSENT = "absent"


class ReasonCode(Enum):
    """Machine-readable reason taxonomy for probe outcomes."""

    OK = "ok"
    HTTP_STATUS = "http_status"
    REQUEST_EXCEPTION = "request_exception"
    TIMEOUT = "timeout"
    HTML_CONTENT_TYPE = "html_content_type"
    MARKUP_BODY = "markup_body"
    PAYLOAD_TOO_LARGE = "payload_too_large"


__all__ = ("Classification", "ReasonCode")
