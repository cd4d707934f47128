"""Filename rules for the generated static site."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import re

from .models import Article

SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
TRANSLIT = str.maketrans({"ä": "ae", "ö": "oe", "ü": "ue", "ß": "ss"})


@dataclass(frozen=True)
class SitePaths:
    root: Path
    index_html: Path
    articles_dir: Path
    css_file: Path
    js_file: Path


def build_site_paths(public_dir: str | Path) -> SitePaths:
    root = Path(public_dir)
    return SitePaths(
        root=root,
        index_html=root / "index.html",
        articles_dir=root / "articles",
        css_file=root / "css" / "style.css",
        js_file=root / "js" / "quiz.js",
    )


def slugify(text: str) -> str:
    s = (text or "").lower().translate(TRANSLIT)
    s = re.sub(r"[^a-z0-9]+", "-", s)
    return s.strip("-")


def article_filename(article: Article) -> str:
    slug = slugify(article.title) or "article"
    if article.id.isdigit():
        return f"{slug}-{article.id}.html"
    return f"{slug}.html"


def validate_slug(slug: str) -> bool:
    return SLUG_RE.match(slug) is not None
