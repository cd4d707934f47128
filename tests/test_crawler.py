"""Tests for RSS parsing, GraphQL content retrieval and fallback handling."""

from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest
import requests

from dw_learner.crawler import (
    ContentUnavailableError,
    build_graphql_query,
    clean_html_content,
    extract_article_id,
    fetch_article_content,
    fetch_articles,
    parse_feed,
)
from dw_learner.models import Article

RSS_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Langsam gesprochene Nachrichten | Deutsch lernen | DW</title>
    <item>
      <title>04.06.2025 \xe2\x80\x93 Langsam gesprochene Nachrichten</title>
      <link>https://learngerman.dw.com/de/04062025-langsam-gesprochene-nachrichten/a-72784101</link>
      <description>Trainiere dein H\xc3\xb6rverstehen mit den Nachrichten.</description>
      <pubDate>Wed, 04 Jun 2025 16:00:00 GMT</pubDate>
      <enclosure url="https://radiodownloads.dw.com/Events/dwelle/dassets/2025/06/04/lgn.mp3" type="audio/mpeg" length="1000"/>
    </item>
    <item>
      <title>03.06.2025 \xe2\x80\x93 Langsam gesprochene Nachrichten</title>
      <link>https://learngerman.dw.com/de/03062025-langsam-gesprochene-nachrichten/a-72770001</link>
      <description>Zweite Folge.</description>
      <pubDate>Tue, 03 Jun 2025 16:00:00 GMT</pubDate>
    </item>
    <item>
      <title></title>
      <link>https://learngerman.dw.com/de/x/a-1</link>
    </item>
    <item>
      <title>02.06.2025 \xe2\x80\x93 Langsam gesprochene Nachrichten</title>
      <link>https://learngerman.dw.com/de/02062025-langsam-gesprochene-nachrichten/a-72760001</link>
    </item>
  </channel>
</rss>
"""

LONG_HTML = (
    "<p>Die Bundesregierung will das Schienennetz in den kommenden Jahren deutlich ausbauen.</p>"
    "<h2>Kritik aus der Opposition</h2>"
    "<p>Die Opposition bezweifelt, dass die Finanzierung gesichert ist.</p>"
)


class FakeResponse:
    def __init__(self, status_code=200, content=b"", payload=None):
        self.status_code = status_code
        self.content = content
        self._payload = payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    """Returns queued responses (or raises queued exceptions) in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def make_article(article_id="72784101"):
    return Article(
        id=article_id,
        title="04.06.2025 – Langsam gesprochene Nachrichten",
        description="Trainiere dein Hörverstehen.",
        url=f"https://learngerman.dw.com/de/x/a-{article_id}",
    )


class TestExtractArticleId:

    def test_numeric_id(self):
        url = "https://learngerman.dw.com/de/04062025-langsam-gesprochene-nachrichten/a-72784101"
        assert extract_article_id(url) == "72784101"

    def test_no_id_returns_url(self):
        url = "https://learngerman.dw.com/de/overview"
        assert extract_article_id(url) == url

    def test_empty(self):
        assert extract_article_id("") == ""


class TestParseFeed:

    def test_fields(self):
        articles = parse_feed(RSS_XML, limit=5)
        first = articles[0]
        assert first.id == "72784101"
        assert first.title == "04.06.2025 – Langsam gesprochene Nachrichten"
        assert first.description == "Trainiere dein Hörverstehen mit den Nachrichten."
        assert first.audio_url.endswith("lgn.mp3")
        assert first.published_at is not None
        assert first.published_at.date() == date(2025, 6, 4)
        assert first.content == ""

    def test_items_without_title_skipped(self):
        articles = parse_feed(RSS_XML, limit=5)
        assert [a.id for a in articles] == ["72784101", "72770001", "72760001"]

    def test_missing_enclosure_and_date(self):
        articles = parse_feed(RSS_XML, limit=5)
        last = articles[-1]
        assert last.audio_url == ""
        assert last.published_at is None

    def test_limit_applies_to_feed_items(self):
        articles = parse_feed(RSS_XML, limit=2)
        assert len(articles) == 2

    def test_garbage_input(self):
        assert parse_feed(b"not xml at all", limit=5) == []


class TestFetchArticles:

    def test_fetch_uses_rss_url(self, app_config):
        session = FakeSession(FakeResponse(content=RSS_XML))
        articles = fetch_articles(app_config.feed, session=session)
        assert len(articles) == 3
        method, url, kwargs = session.calls[0]
        assert method == "GET"
        assert url == app_config.feed.rss_url
        assert "User-Agent" in kwargs["headers"]

    def test_retries_then_succeeds(self, app_config):
        session = FakeSession(requests.ConnectionError("down"), FakeResponse(content=RSS_XML))
        articles = fetch_articles(app_config.feed, session=session)
        assert len(articles) == 3
        assert len(session.calls) == 2

    def test_raises_after_retries(self, app_config):
        session = FakeSession(FakeResponse(status_code=503), FakeResponse(status_code=503))
        with pytest.raises(RuntimeError, match="Request failed after retries"):
            fetch_articles(app_config.feed, session=session)


class TestCleanHtml:

    def test_paragraphs_separated_by_blank_lines(self):
        raw = "<p>Erster   Absatz</p><h2>Titel</h2><p>Zweiter<br>Absatz</p><script>x()</script>"
        assert clean_html_content(raw) == "Erster Absatz\n\nTitel\n\nZweiter Absatz"

    def test_nested_blocks_not_duplicated(self):
        raw = "<ul><li><p>Punkt eins</p></li><li>Punkt zwei</li></ul>"
        assert clean_html_content(raw) == "Punkt eins\n\nPunkt zwei"

    def test_plain_text_without_blocks(self):
        assert clean_html_content("Nur <b>fetter</b>   Text") == "Nur fetter Text"

    def test_style_removed(self):
        assert clean_html_content("<style>p{}</style><p>Hallo</p>") == "Hallo"


class TestFetchArticleContent:

    def test_graphql_request_shape(self, app_config):
        payload = {"data": {"content": {"id": 72784101, "text": LONG_HTML}}}
        session = FakeSession(FakeResponse(payload=payload))
        article = fetch_article_content(make_article(), app_config.feed, session=session)

        method, url, kwargs = session.calls[0]
        assert method == "POST"
        assert url == app_config.feed.graphql_url
        assert kwargs["json"] == build_graphql_query(72784101, app_config.feed)
        assert kwargs["json"]["variables"] == {"id": 72784101, "lang": "GERMAN", "appName": "mdl"}
        assert kwargs["json"]["extensions"]["persistedQuery"]["sha256Hash"] == app_config.feed.graphql_hash
        assert kwargs["headers"]["Content-Type"] == "application/json"

        assert article.content_source == "graphql"
        assert article.content.split("\n\n")[1] == "Kritik aus der Opposition"

    def test_original_article_unchanged(self, app_config):
        payload = {"data": {"content": {"text": LONG_HTML}}}
        original = make_article()
        fetch_article_content(original, app_config.feed, session=FakeSession(FakeResponse(payload=payload)))
        assert original.content == ""

    def test_short_content_uses_fallback(self, app_config):
        payload = {"data": {"content": {"text": "<p>kurz</p>"}}}
        article = fetch_article_content(make_article(), app_config.feed, session=FakeSession(FakeResponse(payload=payload)))
        assert article.content_source == "fallback"
        assert article.title in article.content
        assert article.url in article.content

    def test_missing_content_uses_fallback(self, app_config):
        payload = {"data": {"content": None}}
        article = fetch_article_content(make_article(), app_config.feed, session=FakeSession(FakeResponse(payload=payload)))
        assert article.content_source == "fallback"

    def test_http_failure_uses_fallback(self, app_config):
        session = FakeSession(requests.ConnectionError("down"), requests.ConnectionError("down"))
        article = fetch_article_content(make_article(), app_config.feed, session=session)
        assert article.content_source == "fallback"
        assert len(session.calls) == 2

    def test_invalid_json_uses_fallback(self, app_config):
        article = fetch_article_content(make_article(), app_config.feed, session=FakeSession(FakeResponse()))
        assert article.content_source == "fallback"

    @pytest.mark.parametrize("payload", [[1], "text", {"data": [1]}, {"data": {"content": "text"}}])
    def test_unexpected_json_shape_uses_fallback(self, app_config, payload):
        article = fetch_article_content(make_article(), app_config.feed, session=FakeSession(FakeResponse(payload=payload)))
        assert article.content_source == "fallback"

    def test_unexpected_json_shape_respects_fail_policy(self, app_config):
        cfg = replace(app_config.feed, fallback_policy="fail")
        with pytest.raises(ContentUnavailableError):
            fetch_article_content(make_article(), cfg, session=FakeSession(FakeResponse(payload=[1])))

    def test_non_numeric_id_skips_request(self, app_config):
        session = FakeSession()
        article = fetch_article_content(make_article("not-a-number"), app_config.feed, session=session)
        assert article.content_source == "fallback"
        assert session.calls == []

    def test_fail_policy_raises(self, app_config):
        cfg = replace(app_config.feed, fallback_policy="fail")
        payload = {"data": {"content": {"text": ""}}}
        with pytest.raises(ContentUnavailableError):
            fetch_article_content(make_article(), cfg, session=FakeSession(FakeResponse(payload=payload)))

    def test_warn_policy_logs_warning(self, app_config, caplog):
        payload = {"data": {"content": {"text": ""}}}
        with caplog.at_level("WARNING", logger="dw_learner.crawler"):
            fetch_article_content(make_article(), app_config.feed, session=FakeSession(FakeResponse(payload=payload)))
        assert any("fallback content" in r.getMessage() for r in caplog.records)

    def test_placeholder_policy_is_quiet(self, app_config, caplog):
        cfg = replace(app_config.feed, fallback_policy="placeholder")
        payload = {"data": {"content": {"text": ""}}}
        with caplog.at_level("WARNING", logger="dw_learner.crawler"):
            article = fetch_article_content(make_article(), cfg, session=FakeSession(FakeResponse(payload=payload)))
        assert article.content_source == "fallback"
        assert not any("fallback content" in r.getMessage() for r in caplog.records)
