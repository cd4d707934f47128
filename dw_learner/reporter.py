"""Static website generator.

This module never calls external APIs. It renders processed articles into
`public/` as an index page, one page per article, a stylesheet and the quiz
script.
"""

from __future__ import annotations

from datetime import datetime
import html
import json
import logging
from pathlib import Path

from .config import AppConfig
from .file_rules import SitePaths, article_filename, build_site_paths, validate_slug
from .highlighter import render_content
from .models import ProcessedArticle


LOGGER = logging.getLogger(__name__)

SITE_TITLE = "DW German Learning"


def _esc(value: object) -> str:
    return html.escape(str(value or ""), quote=True)


def _date_display(value: datetime | None) -> str:
    return value.strftime("%d.%m.%Y") if value else ""


def _index_card(item: ProcessedArticle) -> str:
    a = item.article
    audio = '<span class="stat">🎧 Audio available</span>' if a.audio_url else ""
    return f"""
      <div class="article-card">
        <h2><a href="articles/{_esc(article_filename(a))}">{_esc(a.title)}</a></h2>
        <p class="date">{_esc(_date_display(a.published_at))}</p>
        <p class="description">{_esc(a.description)}</p>
        <div class="stats">
          <span class="stat">📚 {len(item.terms)} words explained</span>
          <span class="stat">❓ {len(item.quizzes)} quiz questions</span>
          {audio}
        </div>
      </div>"""


def render_index(processed: list[ProcessedArticle], generated_at: datetime) -> str:
    cards = "".join(_index_card(item) for item in processed)
    if not cards:
        cards = '<p class="empty">No articles yet.</p>'
    return f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{SITE_TITLE} - Langsam gesprochene Nachrichten</title>
  <link rel="stylesheet" href="css/style.css">
</head>
<body>
  <header>
    <h1>🇩🇪 {SITE_TITLE}</h1>
    <p>Learn German with Deutsche Welle's slow news</p>
  </header>
  <main>
    <div class="articles-grid">{cards}
    </div>
  </main>
  <footer>
    <p>Generated on {generated_at.strftime("%d.%m.%Y")} | Data from <a href="https://www.dw.com">Deutsche Welle</a></p>
  </footer>
</body>
</html>
"""


def _explanation_card(item) -> str:
    example = f'<p class="example"><em>{_esc(item.example)}</em></p>' if item.example else ""
    return f"""
        <div class="explanation-card {_esc(item.category)}">
          <h3>{_esc(item.term)}</h3>
          <p class="part-of-speech">{_esc(item.part_of_speech)}</p>
          <p class="definition">{_esc(item.gloss)}</p>
          {example}
          <span class="difficulty-badge">{_esc(item.category)}</span>
        </div>"""


def _quiz_block(index: int, quiz) -> str:
    options = "".join(
        f"""
            <label><input type="radio" name="q{index}" value="{opt_index}"> {_esc(option)}</label>"""
        for opt_index, option in enumerate(quiz.options)
    )
    return f"""
        <div class="quiz-question" data-question="{index}">
          <h3>Question {index + 1}</h3>
          <p class="question">{_esc(quiz.question)}</p>
          <div class="options">{options}
          </div>
          <div class="answer-feedback" hidden>
            <p class="explanation">{_esc(quiz.explanation)}</p>
          </div>
        </div>"""


def render_article_page(item: ProcessedArticle) -> str:
    a = item.article
    body = render_content(a.content, item.terms)
    audio = ""
    if a.audio_url:
        audio = f"""
    <section class="audio-section">
      <h2>🎧 Listen to the Article</h2>
      <audio controls preload="none">
        <source src="{_esc(a.audio_url)}" type="audio/mpeg">
        Your browser does not support the audio element.
      </audio>
    </section>"""

    notice = ""
    if a.content_source == "fallback":
        notice = '<p class="notice">The full text could not be retrieved for this episode.</p>'

    cards = "".join(_explanation_card(t) for t in item.terms)
    quizzes = "".join(_quiz_block(i, q) for i, q in enumerate(item.quizzes))
    quiz_section = ""
    if item.quizzes:
        quiz_section = f"""
    <section class="quiz-section">
      <h2>❓ Test Your Understanding</h2>
      <div id="quiz-container">{quizzes}
        <button type="button" onclick="checkAnswers()" class="check-button">Check Answers</button>
        <div id="quiz-results" hidden></div>
      </div>
    </section>"""

    # "</" must not appear inside an inline script block.
    quiz_json = json.dumps([q.to_dict() for q in item.quizzes], ensure_ascii=False).replace("</", "<\\/")

    return f"""<!doctype html>
<html lang="de">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{_esc(a.title)} - {SITE_TITLE}</title>
  <link rel="stylesheet" href="../css/style.css">
</head>
<body>
  <header>
    <nav><a href="../index.html">← Back to Articles</a></nav>
    <h1>{_esc(a.title)}</h1>
    <p class="date">Published: {_esc(_date_display(a.published_at))}</p>
  </header>
  <main>{audio}
    <section class="text-section">
      <h2>📖 Article Text</h2>
      {notice}
      <div class="german-text">
{body}
      </div>
    </section>
    <section class="explanations-section">
      <h2>📚 Difficult Words Explained</h2>
      <div class="explanations-grid">{cards}
      </div>
    </section>{quiz_section}
  </main>
  <footer>
    <p><a href="{_esc(a.url)}" target="_blank" rel="noopener">Read original article on DW.com</a></p>
  </footer>
  <script>
    const quizData = {quiz_json};
  </script>
  <script src="../js/quiz.js"></script>
</body>
</html>
"""


STYLESHEET = """* { margin: 0; padding: 0; box-sizing: border-box; }
body {
  font-family: "Segoe UI", Tahoma, Geneva, Verdana, sans-serif;
  line-height: 1.6;
  color: #333;
  background-color: #f8f9fa;
}
header {
  background: linear-gradient(135deg, #d32f2f, #f44336);
  color: #fff;
  padding: 2rem;
  text-align: center;
}
header h1 { font-size: 2.2rem; margin-bottom: 0.5rem; }
nav a { color: #fff; text-decoration: none; padding: 0.5rem 1rem; border-radius: 4px; }
nav a:hover { background-color: rgba(255, 255, 255, 0.2); }
main { max-width: 1200px; margin: 2rem auto; padding: 0 1rem; }
.articles-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(350px, 1fr)); gap: 2rem; }
.article-card, section {
  background: #fff;
  border-radius: 8px;
  padding: 1.5rem;
  box-shadow: 0 2px 8px rgba(0, 0, 0, 0.1);
}
section { margin: 2rem 0; padding: 2rem; }
section h2, .article-card h2 a { color: #d32f2f; text-decoration: none; }
section h2 { margin-bottom: 1.5rem; font-size: 1.5rem; }
.date { color: #666; font-size: 0.9rem; margin-bottom: 1rem; }
.stats { display: flex; gap: 1rem; margin-top: 1rem; flex-wrap: wrap; }
.stat { background: #e3f2fd; padding: 0.25rem 0.5rem; border-radius: 4px; font-size: 0.85rem; color: #1976d2; }
.notice { background: #fff3e0; border-left: 4px solid #ff9800; padding: 0.5rem 1rem; margin-bottom: 1rem; }
.audio-section audio { width: 100%; margin-top: 1rem; }
.german-text p { margin-bottom: 1rem; font-size: 1.1rem; line-height: 1.8; }
.german-text h3 { margin: 1.5rem 0 0.75rem; color: #b71c1c; }
.vocab { position: relative; cursor: help; border-bottom: 2px solid; }
.vocab-beginner { border-color: #4caf50; }
.vocab-intermediate { border-color: #ff9800; }
.vocab-advanced { border-color: #f44336; }
.vocab-tip {
  display: none;
  position: absolute;
  left: 0;
  top: 1.8em;
  z-index: 10;
  min-width: 16rem;
  max-width: 24rem;
  padding: 0.5rem 0.75rem;
  border-radius: 6px;
  background: #263238;
  color: #fff;
  font-size: 0.9rem;
  line-height: 1.4;
}
.vocab:hover .vocab-tip, .vocab:focus .vocab-tip { display: block; }
.explanations-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(300px, 1fr)); gap: 1.5rem; }
.explanation-card { border: 1px solid #ddd; border-radius: 8px; padding: 1.5rem; position: relative; }
.explanation-card.beginner { border-left: 4px solid #4caf50; }
.explanation-card.intermediate { border-left: 4px solid #ff9800; }
.explanation-card.advanced { border-left: 4px solid #f44336; }
.explanation-card h3 { color: #d32f2f; font-size: 1.3rem; margin-bottom: 0.5rem; }
.part-of-speech { font-style: italic; color: #666; font-size: 0.9rem; margin-bottom: 1rem; }
.definition { margin-bottom: 1rem; font-weight: 500; }
.example { color: #555; margin-bottom: 1rem; }
.difficulty-badge {
  position: absolute;
  top: 1rem;
  right: 1rem;
  padding: 0.25rem 0.5rem;
  border-radius: 12px;
  font-size: 0.75rem;
  font-weight: bold;
  text-transform: uppercase;
}
.beginner .difficulty-badge { background: #e8f5e8; color: #2e7d32; }
.intermediate .difficulty-badge { background: #fff3e0; color: #ef6c00; }
.advanced .difficulty-badge { background: #ffebee; color: #c62828; }
.quiz-question { border: 1px solid #ddd; border-radius: 8px; padding: 1.5rem; margin-bottom: 1.5rem; }
.quiz-question h3 { color: #d32f2f; margin-bottom: 1rem; }
.question { font-weight: 500; margin-bottom: 1rem; }
.options label { display: block; padding: 0.5rem 0; cursor: pointer; }
.options input[type="radio"] { margin-right: 0.5rem; }
.check-button {
  background: #d32f2f;
  color: #fff;
  border: none;
  padding: 1rem 2rem;
  border-radius: 6px;
  font-size: 1rem;
  cursor: pointer;
}
.check-button:disabled { background: #9e9e9e; cursor: default; }
.answer-feedback { background: #e8f5e8; border: 1px solid #4caf50; border-radius: 4px; padding: 1rem; margin-top: 1rem; }
.answer-feedback.incorrect { background: #ffebee; border-color: #f44336; }
#quiz-results { margin-top: 2rem; padding: 1.5rem; border-radius: 8px; text-align: center; font-size: 1.1rem; }
.result-good { background: #e8f5e8; color: #2e7d32; border: 2px solid #4caf50; }
.result-okay { background: #fff3e0; color: #ef6c00; border: 2px solid #ff9800; }
.result-poor { background: #ffebee; color: #c62828; border: 2px solid #f44336; }
footer { text-align: center; padding: 2rem; color: #666; border-top: 1px solid #ddd; margin-top: 3rem; }
footer a { color: #d32f2f; text-decoration: none; }
@media (max-width: 768px) {
  .articles-grid, .explanations-grid { grid-template-columns: 1fr; }
  header h1 { font-size: 1.8rem; }
  .stats { flex-direction: column; gap: 0.5rem; }
}
"""

QUIZ_SCRIPT = """function checkAnswers() {
  const questions = document.querySelectorAll(".quiz-question");
  let correct = 0;
  const total = questions.length;

  questions.forEach((question, index) => {
    const selected = question.querySelector('input[name="q' + index + '"]:checked');
    const feedback = question.querySelector(".answer-feedback");
    const answer = quizData[index].correctAnswer;

    if (!selected) {
      question.style.borderColor = "#ff9800";
      return;
    }
    if (parseInt(selected.value, 10) === answer) {
      correct++;
      feedback.classList.remove("incorrect");
      question.style.borderColor = "#4caf50";
    } else {
      feedback.classList.add("incorrect");
      question.style.borderColor = "#f44336";
    }
    feedback.hidden = false;
  });

  const percentage = total ? Math.round((correct / total) * 100) : 0;
  let resultClass = "good";
  let message = "🎉 Excellent work!";
  if (percentage < 60) {
    resultClass = "poor";
    message = "📚 Keep studying!";
  } else if (percentage < 80) {
    resultClass = "okay";
    message = "👍 Good job!";
  }

  const results = document.getElementById("quiz-results");
  results.className = "result-" + resultClass;
  results.innerHTML = "<h3>" + message + "</h3><p>You got " + correct + " out of " + total +
    " questions correct (" + percentage + "%)</p>";
  results.hidden = false;

  const button = document.querySelector(".check-button");
  button.disabled = true;
  button.textContent = "Quiz Completed";
}
"""


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def generate_site(processed: list[ProcessedArticle], cfg: AppConfig, now: datetime | None = None) -> Path:
    """Write the complete static site and return the index page path."""

    paths: SitePaths = build_site_paths(cfg.paths.public_dir)
    paths.articles_dir.mkdir(parents=True, exist_ok=True)

    for item in processed:
        filename = article_filename(item.article)
        if not validate_slug(filename[: -len(".html")]):
            LOGGER.warning("Unusual article filename: %s", filename)
        _write(paths.articles_dir / filename, render_article_page(item))

    _write(paths.index_html, render_index(processed, now or datetime.now()))
    _write(paths.css_file, STYLESHEET)
    _write(paths.js_file, QUIZ_SCRIPT)

    LOGGER.info("Website generated with %d articles: %s", len(processed), paths.index_html)
    return paths.index_html
