"""Manifest records, settings defaults and clamping."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from LlmsDotTxt.ManifestWatch.models import (
    DEFAULT_HISTORY_COUNT,
    MAX_HISTORY_COUNT,
    MIN_HISTORY_COUNT,
    ManifestRecord,
    Settings,
    clamp_history_count,
)


@given(st.one_of(st.integers(), st.none(), st.text(max_size=4), st.booleans()))
def test_clamped_count_is_always_in_range(value) -> None:
    assert MIN_HISTORY_COUNT <= clamp_history_count(value) <= MAX_HISTORY_COUNT


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (1, 1), (50, 50), (51, 50), (0, 5), (-1, 1), (None, 5), ("9", 9), ("x", 5), (True, 5), (7.9, 7),
        ("12.5", 12), ("12abc", 12), (" 8 items", 8), ("-4", 1), ("0.9", 5),
    ],
)
def test_clamp_history_count(value, expected) -> None:
    assert clamp_history_count(value) == expected


def test_settings_from_missing_or_partial_object() -> None:
    assert Settings.from_stored(None) == Settings()
    assert Settings.from_stored("corrupt") == Settings()
    partial = Settings.from_stored({"historyCount": 12, "showFrontmatter": None})
    assert partial.history_count == 12
    assert partial.render_markdown is True
    assert partial.show_frontmatter is True


def test_settings_clamp_on_read_and_round_trip_wire_names() -> None:
    settings = Settings.from_stored({"historyCount": 999, "renderMarkdown": False, "extra": 1})
    assert settings.to_wire() == {
        "historyCount": MAX_HISTORY_COUNT,
        "renderMarkdown": False,
        "showFrontmatter": True,
    }
    assert Settings(history_count=0).history_count == DEFAULT_HISTORY_COUNT


def test_manifest_record_from_dict() -> None:
    record = ManifestRecord.from_dict({"url": "https://x.com/llms.txt", "domain": "x.com", "content": "c"})
    assert record.to_dict() == {"url": "https://x.com/llms.txt", "domain": "x.com", "content": "c"}
    assert ManifestRecord.from_dict({"url": "https://x.com/llms.txt"}).content == ""


@pytest.mark.parametrize("data", [None, [], {"domain": "x.com"}, {"url": ""}])
def test_manifest_record_rejects_malformed(data) -> None:
    with pytest.raises(ValueError):
        ManifestRecord.from_dict(data)
