"""Candidate manifest URL and domain resolution."""

from __future__ import annotations

import pytest

from LlmsDotTxt.ManifestWatch.urls import is_http_url, manifest_url_for, page_domain


@pytest.mark.parametrize(
    ("page", "expected"),
    [
        ("https://a.com/docs/page.html", "https://a.com/docs/llms.txt"),
        ("https://a.com/", "https://a.com/llms.txt"),
        ("https://a.com", "https://a.com/llms.txt"),
        ("https://a.com/docs/", "https://a.com/docs/llms.txt"),
        ("https://a.com/docs", "https://a.com/llms.txt"),
        ("http://a.com/a/b/c/index.html?q=1#top", "http://a.com/a/b/c/llms.txt"),
        ("HTTPS://Docs.Example.COM/Guide/Intro", "https://docs.example.com/Guide/llms.txt"),
        ("https://a.com:8443/x/y", "https://a.com:8443/x/llms.txt"),
        ("https://a.com:443/x/y", "https://a.com/x/llms.txt"),
        ("http://[::1]:8080/app/page", "http://[::1]:8080/app/llms.txt"),
        ("https://a.com/llms.txt", "https://a.com/llms.txt"),
    ],
)
def test_manifest_url_for_http_pages(page: str, expected: str) -> None:
    assert manifest_url_for(page) == expected


@pytest.mark.parametrize(
    "page",
    [
        "file:///home/me/index.html",
        "about:blank",
        "chrome://extensions/",
        "ftp://a.com/pub/file",
        "not a url",
        "",
        None,
        "https://a.com:99999/x",
        "https:///docs/page",
    ],
)
def test_manifest_url_for_not_applicable(page) -> None:
    assert manifest_url_for(page) is None
    assert not is_http_url(page)


def test_page_domain_lowercases_and_drops_port() -> None:
    assert page_domain("https://X.com:8080/guide") == "x.com"
    assert page_domain("http://x.com") == "x.com"


def test_page_domain_without_host_is_none() -> None:
    assert page_domain("about:blank") is None
    assert page_domain("file:///tmp/a.html") is None
    assert page_domain("") is None
