"""Record types shared by the crawler, analyzer, store and reporter.

Serialised field names follow the JSON the language model is asked to
return (`word`, `definition`, `partOfSpeech`, ...), so stored files and
model output share one shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

CATEGORIES = ("beginner", "intermediate", "advanced")
DEFAULT_CATEGORY = "intermediate"


@dataclass(frozen=True)
class VocabularyTerm:
    term: str
    gloss: str
    category: str
    part_of_speech: str = ""
    example: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VocabularyTerm":
        category = str(data.get("difficulty", "") or "").strip().lower()
        if category not in CATEGORIES:
            category = DEFAULT_CATEGORY
        return cls(
            term=str(data.get("word", "") or "").strip(),
            gloss=str(data.get("definition", "") or "").strip(),
            category=category,
            part_of_speech=str(data.get("partOfSpeech", "") or "").strip(),
            example=str(data.get("example", "") or "").strip(),
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "word": self.term,
            "definition": self.gloss,
            "example": self.example,
            "difficulty": self.category,
            "partOfSpeech": self.part_of_speech,
        }


@dataclass(frozen=True)
class QuizQuestion:
    question: str
    options: list[str]
    correct_answer: int
    explanation: str = ""
    related_word: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QuizQuestion":
        options = data.get("options", [])
        if not isinstance(options, list):
            options = []
        return cls(
            question=str(data.get("question", "") or "").strip(),
            options=[str(o) for o in options],
            correct_answer=int(data.get("correctAnswer", -1)),
            explanation=str(data.get("explanation", "") or "").strip(),
            related_word=str(data.get("relatedWord", "") or "").strip(),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "question": self.question,
            "options": list(self.options),
            "correctAnswer": self.correct_answer,
            "explanation": self.explanation,
        }
        if self.related_word:
            out["relatedWord"] = self.related_word
        return out


@dataclass(frozen=True)
class Article:
    id: str
    title: str
    description: str
    url: str
    audio_url: str = ""
    published_at: datetime | None = None
    content: str = ""
    content_source: str = ""

    def with_content(self, content: str, source: str) -> "Article":
        return replace(self, content=content, content_source=source)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Article":
        published = data.get("publishedAt") or ""
        published_at = None
        if published:
            try:
                published_at = datetime.fromisoformat(str(published))
            except ValueError:
                published_at = None
        return cls(
            id=str(data.get("id", "")),
            title=str(data.get("title", "")),
            description=str(data.get("description", "")),
            url=str(data.get("url", "")),
            audio_url=str(data.get("audioUrl", "") or ""),
            published_at=published_at,
            content=str(data.get("content", "") or ""),
            content_source=str(data.get("contentSource", "") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "url": self.url,
            "audioUrl": self.audio_url,
            "publishedAt": self.published_at.isoformat() if self.published_at else "",
            "content": self.content,
            "contentSource": self.content_source,
        }


@dataclass(frozen=True)
class ProcessedArticle:
    article: Article
    terms: list[VocabularyTerm] = field(default_factory=list)
    quizzes: list[QuizQuestion] = field(default_factory=list)
    processed_date: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProcessedArticle":
        return cls(
            article=Article.from_dict(data.get("article") or {}),
            terms=[VocabularyTerm.from_dict(x) for x in (data.get("explanations") or []) if isinstance(x, dict)],
            quizzes=[QuizQuestion.from_dict(x) for x in (data.get("quizzes") or []) if isinstance(x, dict)],
            processed_date=str(data.get("processedDate", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "article": self.article.to_dict(),
            "explanations": [t.to_dict() for t in self.terms],
            "quizzes": [q.to_dict() for q in self.quizzes],
            "processedDate": self.processed_date,
        }


@dataclass(frozen=True)
class ArticleOutcome:
    """Result of running one article through the pipeline."""

    article: Article
    ok: bool
    processed: ProcessedArticle | None = None
    error: str = ""
