"""Core module exports for dw_learner."""

from .analyzer import AIClient, extract_json_array
from .config import AppConfig, load_config
from .crawler import ContentUnavailableError, extract_article_id, fetch_article_content, fetch_articles
from .file_rules import SitePaths, article_filename, build_site_paths, slugify
from .highlighter import highlight, is_heading, render_content, render_paragraph
from .models import Article, ArticleOutcome, ProcessedArticle, QuizQuestion, VocabularyTerm
from .reporter import generate_site
from .store import ArticleStore
from .throttle import FixedDelayLimiter, TokenBucketLimiter, build_limiter

__all__ = [
    "AIClient",
    "AppConfig",
    "Article",
    "ArticleOutcome",
    "ArticleStore",
    "ContentUnavailableError",
    "FixedDelayLimiter",
    "ProcessedArticle",
    "QuizQuestion",
    "SitePaths",
    "TokenBucketLimiter",
    "VocabularyTerm",
    "article_filename",
    "build_limiter",
    "build_site_paths",
    "extract_article_id",
    "extract_json_array",
    "fetch_article_content",
    "fetch_articles",
    "generate_site",
    "highlight",
    "is_heading",
    "load_config",
    "render_content",
    "render_paragraph",
    "slugify",
]
