"""Markdown rendering for question text and instructions sent to students.

Extracted exam text frequently carries light markdown (emphasis, lists,
tables) and inline ``$...$`` math. The host renders it to HTML fragments
once per request and leaves math typesetting to the client, so the stored
question bank stays plain text.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt


@dataclass(slots=True)
class MarkdownMathRenderer:
    """Converts markdown-with-math into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str | None) -> str:
        """Render a markdown string into an HTML fragment."""

        sanitized = (markdown_text or "").strip()
        if not sanitized:
            return "<p><em>No content provided.</em></p>"
        return self._markdown.render(sanitized)

    def render_optional(self, markdown_text: str | None) -> str | None:
        """Like :meth:`render_fragment` but keeps missing text missing."""

        if not (markdown_text or "").strip():
            return None
        return self.render_fragment(markdown_text)


renderer = MarkdownMathRenderer()
# Shared instance; MarkdownIt is safe for concurrent read-only renders.
