from __future__ import annotations

import argparse
from datetime import datetime
import logging
from pathlib import Path
import sys

from dotenv import load_dotenv
import requests

from dw_learner.analyzer import AIClient
from dw_learner.config import AppConfig, load_config
from dw_learner.crawler import fetch_article_content, fetch_articles
from dw_learner.models import Article, ArticleOutcome, ProcessedArticle, QuizQuestion, VocabularyTerm
from dw_learner.reporter import generate_site
from dw_learner.store import ArticleStore
from dw_learner.throttle import build_limiter


LOGGER = logging.getLogger("pipeline")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def process_article(
    article: Article,
    cfg: AppConfig,
    ai: AIClient,
    session: requests.Session | None = None,
) -> ArticleOutcome:
    """Run one article through content fetch, word analysis and quiz generation.

    Never raises: failures come back as an outcome with `ok=False`.
    """

    try:
        LOGGER.info("  Fetching article content...")
        article = fetch_article_content(article, cfg.feed, session=session)

        LOGGER.info("  Analyzing difficult words...")
        terms = ai.explain_difficult_words(article.content)

        LOGGER.info("  Generating quiz questions...")
        quizzes = ai.generate_quiz(article.content, terms)
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("  Error processing article %r: %s", article.title, exc)
        return ArticleOutcome(article=article, ok=False, error=str(exc) or type(exc).__name__)

    processed = ProcessedArticle(
        article=article,
        terms=terms,
        quizzes=quizzes,
        processed_date=datetime.now().isoformat(),
    )
    LOGGER.info("  Processed: %d explanations, %d quiz questions", len(terms), len(quizzes))
    return ArticleOutcome(article=article, ok=True, processed=processed)


def _log_summary(outcomes: list[ArticleOutcome], public_dir: Path) -> None:
    done = [o.processed for o in outcomes if o.ok and o.processed]
    failed = [o for o in outcomes if not o.ok]
    LOGGER.info("Summary:")
    LOGGER.info("   - Articles processed: %d", len(done))
    LOGGER.info("   - Articles failed: %d", len(failed))
    LOGGER.info("   - Total word explanations: %d", sum(len(p.terms) for p in done))
    LOGGER.info("   - Total quiz questions: %d", sum(len(p.quizzes) for p in done))
    LOGGER.info("   - Website generated in: %s", public_dir)
    for o in failed:
        LOGGER.warning("   - Failed: %s (%s)", o.article.title, o.error)


def run_pipeline(
    cfg: AppConfig,
    ai: AIClient,
    limit: int | None = None,
    force: bool = False,
    limiter=None,
    session: requests.Session | None = None,
) -> list[ArticleOutcome]:
    """Fetch -> dedup -> process each article -> persist -> render.

    Articles are processed strictly one after another; a failing article is
    recorded and the loop moves on.
    """

    store = ArticleStore(cfg.paths.data_dir)
    limiter = limiter or build_limiter(cfg.pipeline)
    own_session = session is None
    session = session or requests.Session()

    try:
        LOGGER.info("[STEP] fetch start")
        articles = fetch_articles(cfg.feed, session=session)
        if limit is not None:
            articles = articles[:limit]
        if not force:
            articles = store.filter_new(articles)
        LOGGER.info("[STEP] fetch success count=%d", len(articles))

        outcomes: list[ArticleOutcome] = []
        if not articles:
            LOGGER.warning("No new articles found")
        for i, article in enumerate(articles, start=1):
            limiter.wait()
            LOGGER.info("Processing article %d/%d: %s", i, len(articles), article.title)
            outcomes.append(process_article(article, cfg, ai, session=session))
    finally:
        if own_session:
            session.close()

    done = [o.processed for o in outcomes if o.ok and o.processed]
    if done:
        store.save(done)

    LOGGER.info("[STEP] render start")
    generate_site(store.load_all(), cfg)
    LOGGER.info("[STEP] render success")

    _log_summary(outcomes, cfg.paths.public_dir)
    return outcomes


def run_render_only(cfg: AppConfig) -> Path:
    """Rebuild the site from stored data without any network calls."""

    processed = ArticleStore(cfg.paths.data_dir).load_all()
    LOGGER.info("[STEP] render start (stored articles=%d)", len(processed))
    out = generate_site(processed, cfg)
    LOGGER.info("[STEP] render success path=%s", out)
    return out


def demo_article() -> ProcessedArticle:
    content = (
        "Neue Bahnstrecken für Deutschland\n\n"
        "Die Bundesregierung will das Schienennetz in den kommenden Jahren deutlich ausbauen. "
        "Der Bahnhof in vielen Kleinstädten soll modernisiert werden, und die Bahn kommt künftig öfter.\n\n"
        "Kritik der Opposition\n\n"
        "Die Opposition bezweifelt, dass die Finanzierung gesichert ist. "
        "Für die Pendler wäre der Ausbau dennoch ein Gewinn, sagte ein Sprecher dafür zuständiger Verbände."
    )
    article = Article(
        id="demo",
        title="Demo: Langsam gesprochene Nachrichten",
        description="Beispielartikel ohne Netzwerkzugriff.",
        url="https://learngerman.dw.com/de/langsam-gesprochene-nachrichten/s-60040332",
        published_at=datetime.now(),
        content=content,
        content_source="demo",
    )
    terms = [
        VocabularyTerm("Schienennetz", "rail network", "intermediate", "Nomen", "Das Schienennetz ist sehr dicht."),
        VocabularyTerm("Bahn", "railway, train", "beginner", "Nomen", "Ich fahre mit der Bahn."),
        VocabularyTerm("bezweifelt", "doubts", "advanced", "Verb", ""),
        VocabularyTerm("Für", "for", "beginner", "Präposition", "Für dich mache ich das."),
    ]
    quizzes = [
        QuizQuestion(
            question="What does the government want to expand?",
            options=["The road network", "The rail network", "The airports", "The ports"],
            correct_answer=1,
            explanation="'Schienennetz' means rail network.",
            related_word="Schienennetz",
        )
    ]
    return ProcessedArticle(article=article, terms=terms, quizzes=quizzes, processed_date=datetime.now().isoformat())


def run_demo(cfg: AppConfig) -> Path:
    """Render a bundled sample article: no feed, no model calls."""

    LOGGER.info("[DEMO] render start")
    out = generate_site([demo_article()], cfg)
    LOGGER.info("[DEMO] render success path=%s", out)
    return out


def _setup_logging(cfg: AppConfig) -> None:
    logs_dir = cfg.paths.logs_dir
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"pipeline_{datetime.now().strftime('%Y%m%d')}.log"

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    logging.basicConfig(
        level=logging.INFO,
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_path, encoding="utf-8"),
        ],
    )


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="DW German Learning site generator")
    p.add_argument("--config", default="config.yaml", help="Config file path")
    p.add_argument("--limit", type=int, default=None, help="Process at most N feed items")
    p.add_argument("--force", action="store_true", help="Reprocess articles already in data/")
    mode = p.add_mutually_exclusive_group()
    mode.add_argument("--render-only", action="store_true", help="Rebuild the site from stored data")
    mode.add_argument("--demo", action="store_true", help="Render a sample article without network access")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    load_dotenv()

    # Load config first with lightweight fallback logging.
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    try:
        cfg = load_config(args.config)
    except ValueError as exc:
        LOGGER.error("Invalid config: %s", exc)
        return 1
    _setup_logging(cfg)

    LOGGER.info("Pipeline start limit=%s force=%s render_only=%s demo=%s", args.limit, args.force, args.render_only, args.demo)
    try:
        if args.demo:
            run_demo(cfg)
        elif args.render_only:
            run_render_only(cfg)
        else:
            run_pipeline(cfg, AIClient(cfg.ai), limit=args.limit, force=args.force)
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Pipeline failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
