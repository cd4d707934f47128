"""Vocabulary and quiz analysis through GitHub Models.

The endpoint speaks the OpenAI chat-completions protocol, so the `openai`
client is pointed at it with the GitHub token as API key. Both analyses
degrade to an empty list when the model call or its JSON fails.
"""

from __future__ import annotations

import json
import logging
import re
import time
from typing import Any

from openai import OpenAI, OpenAIError

from .config import AIConfig
from .models import QuizQuestion, VocabularyTerm


LOGGER = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful German language learning assistant. "
    "Always respond with valid JSON when requested."
)

WORDS_PROMPT = """
Analyze the following German text and identify 5-8 difficult words that would be challenging for intermediate German learners.
For each word, provide:
1. The word itself, exactly as it appears in the text
2. A clear definition in English
3. An example sentence in German using the word
4. Difficulty level (beginner/intermediate/advanced)
5. Part of speech

Return the response as a JSON array of objects with properties: word, definition, example, difficulty, partOfSpeech.

German text:
{text}
"""

QUIZ_PROMPT = """
Create 4-5 multiple choice quiz questions based on this German text and the difficult words: {words}

The quiz should test:
1. Reading comprehension of the main article
2. Understanding of the difficult German words
3. Grammar and context usage

For each question, provide:
- question: The question text in English
- options: Array of 4 possible answers
- correctAnswer: Index (0-3) of the correct answer
- explanation: Brief explanation of why the answer is correct
- relatedWord: (optional) If the question relates to a specific difficult word

Return as JSON array of objects.

German text:
{text}
"""

FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")


def extract_json_array(raw: str) -> list[Any]:
    """Pull the JSON array out of a model reply.

    Replies are sometimes wrapped in markdown fences or prose; the outermost
    `[...]` span is parsed. Raises ValueError when no list can be decoded.
    """

    text = FENCE_RE.sub("", (raw or "").strip())
    start, end = text.find("["), text.rfind("]")
    if start != -1 and end > start:
        text = text[start : end + 1]
    data = json.loads(text)
    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON array, got {type(data).__name__}")
    return data


def parse_word_explanations(raw: str) -> list[VocabularyTerm]:
    try:
        items = extract_json_array(raw)
    except ValueError as exc:
        LOGGER.error("Failed to parse word explanations: %s", exc)
        return []

    terms: list[VocabularyTerm] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        term = VocabularyTerm.from_dict(item)
        if not term.term:
            LOGGER.debug("Dropping explanation without word: %s", item)
            continue
        terms.append(term)
    return terms


def _valid_quiz(q: QuizQuestion) -> bool:
    return bool(q.question) and len(q.options) >= 2 and 0 <= q.correct_answer < len(q.options)


def parse_quiz_questions(raw: str) -> list[QuizQuestion]:
    try:
        items = extract_json_array(raw)
    except ValueError as exc:
        LOGGER.error("Failed to parse quiz questions: %s", exc)
        return []

    quizzes: list[QuizQuestion] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            quiz = QuizQuestion.from_dict(item)
        except (TypeError, ValueError):
            LOGGER.debug("Dropping malformed quiz item: %s", item)
            continue
        if _valid_quiz(quiz):
            quizzes.append(quiz)
        else:
            LOGGER.debug("Dropping invalid quiz item: %s", item)
    return quizzes


class AIClient:
    """Chat-completions client for word explanations and quizzes."""

    def __init__(self, cfg: AIConfig, client: Any | None = None) -> None:
        if client is None and not cfg.token:
            raise ValueError("GITHUB_TOKEN environment variable is required")
        self.cfg = cfg
        self.client = client or OpenAI(base_url=cfg.endpoint, api_key=cfg.token)

    def _chat(self, prompt: str) -> str:
        last_exc: Exception | None = None
        for attempt in range(1, self.cfg.retry_count + 1):
            try:
                resp = self.client.chat.completions.create(
                    model=self.cfg.model,
                    messages=[
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": prompt},
                    ],
                    temperature=self.cfg.temperature,
                    max_tokens=self.cfg.max_tokens,
                )
                if not resp.choices:
                    return ""
                return resp.choices[0].message.content or ""
            except OpenAIError as exc:
                last_exc = exc
                LOGGER.warning("Model call failed (%s/%s): %s", attempt, self.cfg.retry_count, exc)
                if attempt < self.cfg.retry_count:
                    time.sleep(self.cfg.retry_delay)
        raise RuntimeError("Failed to call GitHub Models API") from last_exc

    def explain_difficult_words(self, text: str) -> list[VocabularyTerm]:
        try:
            raw = self._chat(WORDS_PROMPT.format(text=text))
        except RuntimeError as exc:
            LOGGER.error("Error getting word explanations: %s", exc)
            return []
        return parse_word_explanations(raw)

    def generate_quiz(self, text: str, terms: list[VocabularyTerm]) -> list[QuizQuestion]:
        words = ", ".join(t.term for t in terms)
        try:
            raw = self._chat(QUIZ_PROMPT.format(words=words, text=text))
        except RuntimeError as exc:
            LOGGER.error("Error generating quiz: %s", exc)
            return []
        return parse_quiz_questions(raw)
