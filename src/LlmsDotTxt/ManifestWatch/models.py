# === NAVMAP v1 ===
# {
#   "module": "LlmsDotTxt.ManifestWatch.models",
#   "purpose": "Manifest records and user settings shared by the stores and the coordinator",
#   "sections": [
#     {
#       "id": "manifestrecord",
#       "name": "ManifestRecord",
#       "anchor": "class-manifestrecord",
#       "kind": "class"
#     },
#     {
#       "id": "clamp-history-count",
#       "name": "clamp_history_count",
#       "anchor": "function-clamp-history-count",
#       "kind": "function"
#     },
#     {
#       "id": "settings",
#       "name": "Settings",
#       "anchor": "class-settings",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Data model for confirmed manifests and user settings.

``ManifestRecord`` is the unit stored both in the durable history and in the
per-tab cache; its wire shape is ``{"url", "domain", "content"}``.
``Settings`` is persisted under camelCase keys (``historyCount``,
``renderMarkdown``, ``showFrontmatter``) so the rendering surfaces can read
them unchanged; only ``history_count`` affects detection.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_HISTORY_COUNT = 5
MIN_HISTORY_COUNT = 1
MAX_HISTORY_COUNT = 50

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


@dataclass(frozen=True)
class ManifestRecord:
    """One confirmed manifest. Replaced wholesale on re-detection."""

    url: str
    domain: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"url": self.url, "domain": self.domain, "content": self.content}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ManifestRecord":
        """Build a record from its wire shape.

        Raises
        ------
        ValueError
            If ``data`` is not a mapping or ``url`` is missing.
        """

        if not isinstance(data, Mapping):
            raise ValueError(f"Manifest record must be a mapping, got {type(data).__name__}")
        url = data.get("url")
        if not isinstance(url, str) or not url:
            raise ValueError("Manifest record is missing 'url'")
        domain = data.get("domain")
        content = data.get("content")
        return cls(
            url=url,
            domain=domain if isinstance(domain, str) else "",
            content=content if isinstance(content, str) else "",
        )


def clamp_history_count(value: Any) -> int:
    """Coerce ``value`` into the supported history capacity range.

    Strings contribute their leading integer (``"12.5"`` and ``"12abc"`` give
    12). Zero, ``None`` and non-numeric input fall back to the default before
    the result is clamped to ``[1, 50]``; negative numbers clamp to ``1``.

    >>> clamp_history_count("12")
    12
    >>> clamp_history_count(0)
    5
    >>> clamp_history_count(500)
    50
    """

    if isinstance(value, bool):
        count = 0
    elif isinstance(value, str):
        match = _LEADING_INT.match(value)
        count = int(match.group(1)) if match else 0
    else:
        try:
            count = int(value)
        except (TypeError, ValueError, OverflowError):
            count = 0
    if count == 0:
        count = DEFAULT_HISTORY_COUNT
    return max(MIN_HISTORY_COUNT, min(MAX_HISTORY_COUNT, count))


class Settings(BaseModel):
    """User-facing settings persisted alongside the history."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        populate_by_name=True, extra="ignore", frozen=True
    )

    history_count: int = Field(
        default=DEFAULT_HISTORY_COUNT,
        alias="historyCount",
        description="Maximum number of confirmed manifests kept in history",
    )
    render_markdown: bool = Field(
        default=True, alias="renderMarkdown", description="Render manifests as markdown"
    )
    show_frontmatter: bool = Field(
        default=True, alias="showFrontmatter", description="Show YAML frontmatter blocks"
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # Stored objects may be partial; null fields take the default.
        if isinstance(data, Mapping):
            return {key: value for key, value in data.items() if value is not None}
        return data

    @field_validator("history_count", mode="before")
    @classmethod
    def _clamp_history_count(cls, v: Any) -> int:
        return clamp_history_count(v)

    @classmethod
    def from_stored(cls, data: Any) -> "Settings":
        """Merge a (possibly partial or missing) stored object over defaults."""

        if not isinstance(data, Mapping):
            return cls()
        return cls.model_validate(data)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


__all__ = (
    "DEFAULT_HISTORY_COUNT",
    "MIN_HISTORY_COUNT",
    "MAX_HISTORY_COUNT",
    "ManifestRecord",
    "Settings",
    "clamp_history_count",
)
