"""
Message formatting: the default swipe formatter, its plain-text fallback, and
markup-to-text extraction for copying.
"""

from __future__ import annotations

import html
import logging
import re
from typing import Callable

from bs4 import BeautifulSoup

from .exceptions import FormattingFailure

logger = logging.getLogger("swipe_unlock.formatting")

# (content, speaker_name, is_system, is_user, message_id) -> markup
Formatter = Callable[[str, str, bool, bool, int], str]

_STRONG_RE = re.compile(r"\*\*(.+?)\*\*", re.DOTALL)
_EMPHASIS_RE = re.compile(r"\*(.+?)\*", re.DOTALL)
_BREAK_TAGS = ("br",)
_BLOCK_TAGS = ("p", "div", "li", "blockquote", "pre")


def escape_plain(content: str) -> str:
    """Escaped plain-text markup, the output used when formatting fails."""
    return html.escape(content).replace("\n", "<br>")


def format_message(
    content: str,
    speaker_name: str,
    is_system: bool,
    is_user: bool,
    message_id: int,
) -> str:
    """Default formatter: escaped text with ``**strong**``, ``*emphasis*`` and line breaks."""
    escaped = html.escape(content)
    escaped = _STRONG_RE.sub(r"<strong>\1</strong>", escaped)
    escaped = _EMPHASIS_RE.sub(r"<em>\1</em>", escaped)
    return escaped.replace("\n", "<br>")


def safe_format(
    formatter: Formatter,
    content: str,
    speaker_name: str,
    is_system: bool,
    is_user: bool,
    message_id: int,
) -> str:
    """Run *formatter*, degrading to :func:`escape_plain` if it raises or returns a non-string."""
    try:
        markup = formatter(content, speaker_name, is_system, is_user, message_id)
        if not isinstance(markup, str):
            raise TypeError(f"formatter returned {type(markup).__name__}, expected str")
        return markup
    except Exception as exc:
        failure = FormattingFailure(message_id, f"{FormattingFailure.notice} ({exc})")
        logger.warning("[SwipeUnlock Render] Message #%s: %s", message_id, failure, exc_info=True)
        return escape_plain(content)


def strip_markup(markup: str) -> str:
    """Plain text of *markup*; line breaks and block ends become newlines."""
    soup = BeautifulSoup(markup, "html.parser")
    for tag in soup.find_all(_BREAK_TAGS):
        tag.replace_with("\n")
    for tag in soup.find_all(_BLOCK_TAGS):
        tag.append("\n")
    return soup.get_text().strip("\n")
