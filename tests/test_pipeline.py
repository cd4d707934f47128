"""Tests for the orchestration loop in main.py."""

from __future__ import annotations

from datetime import datetime

import pytest

import main
from dw_learner.crawler import ContentUnavailableError
from dw_learner.models import Article, QuizQuestion, VocabularyTerm
from dw_learner.store import ArticleStore


def feed_article(article_id, title=None):
    return Article(
        id=article_id,
        title=title or f"Nachrichten {article_id}",
        description="",
        url=f"https://learngerman.dw.com/de/x/a-{article_id}",
        published_at=datetime(2025, 6, 4, 16, 0),
    )


class FakeAI:
    def __init__(self):
        self.calls = []

    def explain_difficult_words(self, text):
        self.calls.append(("words", text))
        return [VocabularyTerm("Bahn", "railway", "beginner")]

    def generate_quiz(self, text, terms):
        self.calls.append(("quiz", text))
        return [QuizQuestion("Q?", ["a", "b", "c", "d"], 0)]


class RecordingLimiter:
    def __init__(self):
        self.waits = 0

    def wait(self):
        self.waits += 1


@pytest.fixture
def fake_network(monkeypatch):
    feed = [feed_article("1"), feed_article("2"), feed_article("3")]

    def fetch_articles(cfg, session=None):
        return list(feed)

    def fetch_article_content(article, cfg, session=None):
        if article.id == "2":
            raise ContentUnavailableError("no body")
        return article.with_content(f"Die Bahn kommt ({article.id}).", "graphql")

    monkeypatch.setattr(main, "fetch_articles", fetch_articles)
    monkeypatch.setattr(main, "fetch_article_content", fetch_article_content)
    return feed


class TestProcessArticle:

    def test_success(self, app_config, fake_network):
        outcome = main.process_article(feed_article("1"), app_config, FakeAI())
        assert outcome.ok
        assert outcome.processed.article.content == "Die Bahn kommt (1)."
        assert outcome.processed.terms[0].term == "Bahn"

    def test_failure_is_captured(self, app_config, fake_network):
        outcome = main.process_article(feed_article("2"), app_config, FakeAI())
        assert not outcome.ok
        assert outcome.processed is None
        assert "no body" in outcome.error


class TestRunPipeline:

    def test_continues_past_failures(self, app_config, fake_network):
        limiter = RecordingLimiter()
        outcomes = main.run_pipeline(app_config, FakeAI(), limiter=limiter)

        assert [o.ok for o in outcomes] == [True, False, True]
        assert limiter.waits == 3

        stored = ArticleStore(app_config.paths.data_dir).known_ids()
        assert stored == {"1", "3"}

        articles_dir = app_config.paths.public_dir / "articles"
        assert len(list(articles_dir.glob("*.html"))) == 2
        assert (app_config.paths.public_dir / "index.html").exists()

    def test_rerun_skips_processed(self, app_config, fake_network):
        main.run_pipeline(app_config, FakeAI(), limiter=RecordingLimiter())
        ai = FakeAI()
        outcomes = main.run_pipeline(app_config, ai, limiter=RecordingLimiter())

        assert [o.article.id for o in outcomes] == ["2"]
        assert len(ai.calls) == 0

    def test_force_reprocesses(self, app_config, fake_network):
        main.run_pipeline(app_config, FakeAI(), limiter=RecordingLimiter())
        outcomes = main.run_pipeline(app_config, FakeAI(), force=True, limiter=RecordingLimiter())
        assert len(outcomes) == 3

    def test_limit(self, app_config, fake_network):
        outcomes = main.run_pipeline(app_config, FakeAI(), limit=1, limiter=RecordingLimiter())
        assert [o.article.id for o in outcomes] == ["1"]

    def test_site_rendered_without_new_articles(self, app_config, monkeypatch):
        monkeypatch.setattr(main, "fetch_articles", lambda cfg, session=None: [])
        outcomes = main.run_pipeline(app_config, FakeAI(), limiter=RecordingLimiter())
        assert outcomes == []
        assert (app_config.paths.public_dir / "index.html").exists()

    def test_feed_failure_propagates(self, app_config, monkeypatch):
        def boom(cfg, session=None):
            raise RuntimeError("Request failed after retries: feed")

        monkeypatch.setattr(main, "fetch_articles", boom)
        with pytest.raises(RuntimeError):
            main.run_pipeline(app_config, FakeAI(), limiter=RecordingLimiter())


class TestOfflineModes:

    def test_demo(self, app_config):
        index = main.run_demo(app_config)
        assert index.exists()
        page = next((app_config.paths.public_dir / "articles").glob("*.html")).read_text(encoding="utf-8")
        assert 'tabindex="0">Bahn<span' in page
        assert "Bahnhof" in page

    def test_render_only(self, app_config, fake_network):
        main.run_pipeline(app_config, FakeAI(), limiter=RecordingLimiter())
        index = app_config.paths.public_dir / "index.html"
        index.unlink()
        assert main.run_render_only(app_config) == index
        assert index.exists()


class TestArgs:

    def test_defaults(self):
        args = main._parse_args([])
        assert args.config == "config.yaml"
        assert args.limit is None
        assert not args.force and not args.render_only and not args.demo

    def test_modes_are_exclusive(self):
        with pytest.raises(SystemExit):
            main._parse_args(["--demo", "--render-only"])

    def test_invalid_config_exits_nonzero(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("feed:\n  fallback_policy: ignore\n", encoding="utf-8")
        monkeypatch.setattr(main, "load_dotenv", lambda: None)
        assert main.main(["--config", str(path), "--demo"]) == 1
