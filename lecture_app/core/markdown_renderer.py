"""Markdown + LaTeX rendering for question previews.

Previews are rendered to HTML once, on the relay, so the student page and the
desktop window show the same markup. Math is left in place for MathJax to
typeset in the browser.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt

MATHJAX_SCRIPT = "https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js"


@dataclass(slots=True)
class QuestionRenderer:
    """Turns a question preview into an HTML fragment."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = MarkdownIt("commonmark", {"html": self.enable_html}).enable("strikethrough")

    def render_fragment(self, markdown_text: str | None) -> str:
        """Render ``markdown_text``; an empty or missing question renders as an empty string."""
        text = (markdown_text or "").strip()
        if not text:
            return ""
        return self._markdown.render(text)


# MarkdownIt renders are read-only, so one instance is shared by Qt and the API thread.
renderer = QuestionRenderer()
