# === NAVMAP v1 ===
# {
#   "module": "LlmsDotTxt.ManifestWatch.errors",
#   "purpose": "Error taxonomy and structured failure logging for manifest detection",
#   "sections": [
#     {
#       "id": "watchererror",
#       "name": "WatcherError",
#       "anchor": "class-watchererror",
#       "kind": "class"
#     },
#     {
#       "id": "storageerror",
#       "name": "StorageError",
#       "anchor": "class-storageerror",
#       "kind": "class"
#     },
#     {
#       "id": "unknownrequesterror",
#       "name": "UnknownRequestError",
#       "anchor": "class-unknownrequesterror",
#       "kind": "class"
#     },
#     {
#       "id": "log-detection-failure",
#       "name": "log_detection_failure",
#       "anchor": "function-log-detection-failure",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Error taxonomy and logging helpers for manifest detection.

Responsibilities
----------------
- Define the exception types that cross module boundaries:
  :class:`StorageError` for durable/volatile store failures and
  :class:`UnknownRequestError` for unsupported protocol requests.
- Centralise structured logging of soft failures through
  :func:`log_detection_failure` so every handler emits the same fields.

Network failures and HTML fallbacks are *not* exceptions here: they are
classification outcomes (``ABSENT``/``REJECTED``) and never escape the
fetcher.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

from LlmsDotTxt.ManifestWatch.classifier import ClassificationResult


class WatcherError(Exception):
    """Base class for manifest watcher errors."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.details: Dict[str, Any] = dict(details or {})


class StorageError(WatcherError):
    """Raised when a keyed store cannot be read or written."""

    def __init__(
        self, message: str, *, key: Optional[str] = None, details: Optional[Dict[str, Any]] = None
    ) -> None:
        merged = dict(details or {})
        if key is not None:
            merged.setdefault("key", key)
        super().__init__(message, details=merged)
        self.key = key


class UnknownRequestError(WatcherError):
    """Raised for protocol requests with an unsupported ``type``."""

    def __init__(self, request_type: Any) -> None:
        super().__init__(
            f"Unsupported request type: {request_type!r}",
            details={"request_type": request_type},
        )
        self.request_type = request_type


def log_detection_failure(
    logger: logging.Logger,
    *,
    tab_id: Optional[int],
    page_url: Optional[str],
    failure: Union[ClassificationResult, BaseException],
    stage: str = "detect",
) -> None:
    """Emit a structured log line for a soft detection failure.

    ``ClassificationResult`` failures (``ABSENT``/``REJECTED``) are logged at
    ``DEBUG``; exceptions are logged at ``WARNING`` with their type.
    """

    extra_fields: Dict[str, Any] = {"tab_id": tab_id, "page_url": page_url, "stage": stage}
    if isinstance(failure, ClassificationResult):
        extra_fields.update(failure.to_dict())
        logger.debug(
            "manifest probe %s (%s) for %s",
            failure.classification.value,
            failure.reason.value,
            failure.url,
            extra={"extra_fields": extra_fields},
        )
        return

    extra_fields["error_type"] = type(failure).__name__
    if isinstance(failure, WatcherError):
        extra_fields.update(failure.details)
    logger.warning(
        "%s failed for tab %s: %s",
        stage,
        tab_id,
        failure,
        extra={"extra_fields": extra_fields},
    )


__all__ = (
    "WatcherError",
    "StorageError",
    "UnknownRequestError",
    "log_detection_failure",
)
