"""Deutsche Welle feed and article content retrieval.

Feed: https://rss.dw.com/xml/dkpodcast_lgn_de
Article bodies come from the learngerman.dw.com GraphQL endpoint through a
persisted query, keyed by the numeric id in links like
`/de/04062025-langsam-gesprochene-nachrichten/a-72784101`.
"""

from __future__ import annotations

import calendar
from datetime import datetime
import logging
import re
import time
from typing import Any

from bs4 import BeautifulSoup
import feedparser
import requests
from zoneinfo import ZoneInfo

from .config import FeedConfig
from .models import Article


LOGGER = logging.getLogger(__name__)

DW_TZ = ZoneInfo("Europe/Berlin")

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/124.0.0.0 Safari/537.36"
    )
}

ARTICLE_ID_RE = re.compile(r"/a-(\d+)")
BLOCK_TAGS = ["p", "h1", "h2", "h3", "h4", "h5", "h6", "li", "blockquote"]
MIN_CONTENT_LENGTH = 100


class ContentUnavailableError(RuntimeError):
    """Article body could not be retrieved and the fallback policy is `fail`."""


def _request_with_retry(
    session: requests.Session,
    method: str,
    url: str,
    cfg: FeedConfig,
    **kwargs: Any,
) -> requests.Response:
    headers = dict(DEFAULT_HEADERS)
    headers.update(kwargs.pop("headers", {}))
    kwargs["headers"] = headers
    kwargs["timeout"] = kwargs.get("timeout", cfg.timeout_sec)

    last_exc: Exception | None = None
    for attempt in range(1, cfg.retry_count + 1):
        try:
            resp = session.request(method=method, url=url, **kwargs)
            resp.raise_for_status()
            return resp
        except requests.RequestException as exc:
            last_exc = exc
            LOGGER.warning("Request failed (%s/%s): %s", attempt, cfg.retry_count, url)
            if attempt < cfg.retry_count:
                time.sleep(cfg.retry_delay)
    raise RuntimeError(f"Request failed after retries: {url}") from last_exc


def extract_article_id(url: str) -> str:
    m = ARTICLE_ID_RE.search(url or "")
    return m.group(1) if m else (url or "")


def _published_at(entry: Any) -> datetime | None:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return None
    return datetime.fromtimestamp(calendar.timegm(parsed), DW_TZ)


def _audio_url(entry: Any) -> str:
    for enclosure in entry.get("enclosures", []) or []:
        href = enclosure.get("href") or enclosure.get("url")
        if href:
            return str(href)
    return ""


def parse_feed(raw: bytes | str, limit: int) -> list[Article]:
    """Parse RSS XML into articles, keeping the first `limit` usable items."""

    feed = feedparser.parse(raw)
    if feed.get("bozo") and not feed.entries:
        LOGGER.warning("Feed parse problem: %s", feed.get("bozo_exception"))

    articles: list[Article] = []
    for entry in feed.entries[:limit]:
        title = " ".join(str(entry.get("title", "")).split())
        link = str(entry.get("link", "")).strip()
        if not title or not link:
            continue
        articles.append(
            Article(
                id=extract_article_id(link),
                title=title,
                description=" ".join(str(entry.get("description", "")).split()),
                url=link,
                audio_url=_audio_url(entry),
                published_at=_published_at(entry),
            )
        )
    return articles


def fetch_articles(cfg: FeedConfig, session: requests.Session | None = None) -> list[Article]:
    """Fetch the latest episodes from the RSS feed."""

    LOGGER.info("Fetching RSS feed from: %s", cfg.rss_url)
    own_session = session is None
    session = session or requests.Session()
    try:
        resp = _request_with_retry(session, "GET", cfg.rss_url, cfg)
    finally:
        if own_session:
            session.close()

    articles = parse_feed(resp.content, cfg.limit)
    LOGGER.info("Extracted %d articles from RSS feed", len(articles))
    return articles


def build_graphql_query(article_id: int, cfg: FeedConfig) -> dict[str, Any]:
    return {
        "operationName": "ContentPage",
        "variables": {"id": article_id, "lang": "GERMAN", "appName": "mdl"},
        "extensions": {"persistedQuery": {"version": 1, "sha256Hash": cfg.graphql_hash}},
    }


def fetch_from_graphql(article_id: int, cfg: FeedConfig, session: requests.Session) -> str:
    """Return the raw HTML body text, or an empty string when unavailable."""

    try:
        resp = _request_with_retry(
            session,
            "POST",
            cfg.graphql_url,
            cfg,
            json=build_graphql_query(article_id, cfg),
            headers={"Content-Type": "application/json"},
        )
        payload = resp.json()
    except (RuntimeError, ValueError) as exc:
        LOGGER.warning("GraphQL fetch failed for article %s: %s", article_id, exc)
        return ""

    if not isinstance(payload, dict):
        LOGGER.warning("Unexpected GraphQL response for article %s: %s", article_id, type(payload).__name__)
        return ""
    data = payload.get("data")
    content = (data.get("content") if isinstance(data, dict) else None) or {}
    text = content.get("text") if isinstance(content, dict) else None
    if not text:
        LOGGER.info("No content found in GraphQL response for article %s", article_id)
        return ""
    return str(text)


def clean_html_content(html_content: str) -> str:
    """Turn article HTML into plain text with blank lines between paragraphs."""

    soup = BeautifulSoup(html_content or "", "html.parser")
    for node in soup(["script", "style"]):
        node.decompose()
    for br in soup.find_all("br"):
        br.replace_with("\n")

    paragraphs: list[str] = []
    for block in soup.find_all(BLOCK_TAGS):
        if block.find_parent(BLOCK_TAGS):
            continue
        text = " ".join(block.get_text().split())
        if text:
            paragraphs.append(text)

    if not paragraphs:
        text = " ".join(soup.get_text().split())
        return text
    return "\n\n".join(paragraphs)


def generate_fallback_content(article: Article) -> str:
    return (
        f"{article.title}\n\n"
        f"{article.description}\n\n"
        'Dies ist ein Artikel aus den "Langsam gesprochene Nachrichten" von Deutsche Welle. '
        "Der vollständige Text konnte nicht automatisch abgerufen werden, "
        f"aber Sie können den Artikel unter folgendem Link lesen: {article.url}\n\n"
        "Nutzen Sie die Audio-Datei, um Ihr Hörverständnis zu verbessern."
    )


def _fallback(article: Article, cfg: FeedConfig, reason: str) -> Article:
    if cfg.fallback_policy == "fail":
        raise ContentUnavailableError(f"Content unavailable for article {article.id}: {reason}")
    if cfg.fallback_policy == "warn":
        LOGGER.warning("Using fallback content for article %s (%s)", article.id, reason)
    else:
        LOGGER.info("Using fallback content for article %s (%s)", article.id, reason)
    return article.with_content(generate_fallback_content(article), "fallback")


def fetch_article_content(
    article: Article,
    cfg: FeedConfig,
    session: requests.Session | None = None,
) -> Article:
    """Return a copy of `article` with its body text filled in."""

    LOGGER.info("Fetching content for article ID: %s (%s)", article.id, article.title)
    if not article.id.isdigit():
        return _fallback(article, cfg, "non-numeric article id")

    own_session = session is None
    session = session or requests.Session()
    try:
        raw = fetch_from_graphql(int(article.id), cfg, session)
    finally:
        if own_session:
            session.close()

    if len(raw) <= MIN_CONTENT_LENGTH:
        return _fallback(article, cfg, "GraphQL returned no usable content")

    content = clean_html_content(raw)
    if not content:
        return _fallback(article, cfg, "empty text after HTML cleanup")
    return article.with_content(content, "graphql")
