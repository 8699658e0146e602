"""Best-effort HTML to markdown conversion for documents served as HTML.

Only the constructs that show up in Yuque notes are handled. Anything else
is reduced to its text. Images become markdown images so the resource
pipeline still finds them.
"""

import html
import re
from typing import List, Optional

_FLAGS = re.IGNORECASE | re.DOTALL

_DROPPED_BLOCKS = re.compile(r"<(script|style)\b[^>]*>.*?</\1>", _FLAGS)
_PRE = re.compile(r"<pre\b[^>]*>(.*?)</pre>", _FLAGS)
_INLINE_CODE = re.compile(r"<code\b[^>]*>(.*?)</code>", _FLAGS)
_IMG = re.compile(r"<img\b[^>]*>", _FLAGS)
_LINK = re.compile(r"<a\b([^>]*)>(.*?)</a>", _FLAGS)
_CHECKBOX = re.compile(r"<input\b[^>]*type\s*=\s*[\"']?checkbox[\"']?[^>]*>", _FLAGS)
_HEADING = re.compile(r"<h([1-6])\b[^>]*>(.*?)</h\1>", _FLAGS)
_STRONG = re.compile(r"<(strong|b)\b[^>]*>(.*?)</\1>", _FLAGS)
_EM = re.compile(r"<(em|i)\b[^>]*>(.*?)</\1>", _FLAGS)
_DEL = re.compile(r"<(del|s|strike)\b[^>]*>(.*?)</\1>", _FLAGS)
_BR = re.compile(r"<br\b[^>]*>", _FLAGS)
_HR = re.compile(r"<hr\b[^>]*>", _FLAGS)
_PARAGRAPH_CLOSE = re.compile(r"</(p|div|section|article|h[1-6])>", _FLAGS)
_INNERMOST_LIST = re.compile(r"<(ul|ol)\b[^>]*>((?:(?!<(?:ul|ol)\b).)*?)</\1>", _FLAGS)
_LIST_ITEM = re.compile(r"<li\b[^>]*>(.*?)</li>", _FLAGS)
_INNERMOST_QUOTE = re.compile(r"<blockquote\b[^>]*>((?:(?!<blockquote\b).)*?)</blockquote>", _FLAGS)
_ANY_TAG = re.compile(r"<[^>]+>")
_BLANK_RUNS = re.compile(r"\n{3,}")
_CHECKBOX_SPACING = re.compile(r"\[( |x)\] +")


def _attribute(tag: str, name: str) -> Optional[str]:
    match = re.search(rf"\b{name}\s*=\s*([\"'])(.*?)\1", tag, _FLAGS)
    if match:
        return html.unescape(match.group(2))
    return None


def _strip_tags(fragment: str) -> str:
    return _ANY_TAG.sub("", fragment)


class _Protected:
    """Holds code spans out of the way of the other rewrites."""

    def __init__(self):
        self.values: List[str] = []

    def stash(self, value: str) -> str:
        self.values.append(value)
        return f"\x00{len(self.values) - 1}\x00"

    def restore(self, text: str) -> str:
        return re.sub(r"\x00(\d+)\x00", lambda m: self.values[int(m.group(1))], text)


def _render_image(match: re.Match) -> str:
    tag = match.group(0)
    src = _attribute(tag, "src")
    if not src:
        return ""
    alt = _attribute(tag, "alt") or ""
    return f"![{alt}]({src})"


def _render_link(match: re.Match) -> str:
    href = _attribute(match.group(1), "href")
    text = match.group(2).strip()
    if not href:
        return text
    return f"[{text or href}]({href})"


def _render_checkbox(match: re.Match) -> str:
    return "[x] " if re.search(r"\bchecked\b", match.group(0), _FLAGS) else "[ ] "


def _render_list(match: re.Match) -> str:
    ordered = match.group(1).lower() == "ol"
    lines: List[str] = []
    for index, item in enumerate(_LIST_ITEM.findall(match.group(2)), start=1):
        marker = f"{index}." if ordered else "-"
        item_lines = [line for line in item.strip().split("\n") if line.strip()] or [""]
        lines.append(f"{marker} {item_lines[0].strip()}")
        lines.extend(f"   {line}" for line in item_lines[1:])
    return "\n\n" + "\n".join(lines) + "\n\n"


def _render_quote(match: re.Match) -> str:
    body = match.group(1).strip()
    quoted = "\n".join(f"> {line}".rstrip() for line in body.split("\n"))
    return f"\n\n{quoted}\n\n"


def html_to_markdown(source: str) -> str:
    """Convert an HTML fragment to markdown.

    Lossy by nature: unknown tags are stripped, entities are unescaped and
    runs of blank lines are collapsed.

    Example:
        ```python
        html_to_markdown("<h2>Plan</h2><ul><li><b>ship</b></li></ul>")
        # '## Plan\\n\\n- **ship**\\n'
        ```
    """
    if not source:
        return ""

    protected = _Protected()
    text = source.replace("\r\n", "\n").replace("\r", "\n")
    text = _DROPPED_BLOCKS.sub("", text)

    text = _PRE.sub(
        lambda m: "\n\n" + protected.stash(f"```\n{html.unescape(_strip_tags(m.group(1))).strip(chr(10))}\n```") + "\n\n",
        text,
    )
    text = _INLINE_CODE.sub(lambda m: protected.stash(f"`{html.unescape(_strip_tags(m.group(1)))}`"), text)

    text = _IMG.sub(_render_image, text)
    text = _LINK.sub(_render_link, text)
    text = _CHECKBOX.sub(_render_checkbox, text)

    text = _HEADING.sub(lambda m: f"\n\n{'#' * int(m.group(1))} {_strip_tags(m.group(2)).strip()}\n\n", text)
    text = _STRONG.sub(lambda m: f"**{m.group(2)}**", text)
    text = _EM.sub(lambda m: f"*{m.group(2)}*", text)
    text = _DEL.sub(lambda m: f"~~{m.group(2)}~~", text)

    text = _BR.sub("\n", text)
    text = _HR.sub("\n\n---\n\n", text)
    text = _PARAGRAPH_CLOSE.sub("\n\n", text)

    while True:
        converted = _INNERMOST_LIST.sub(_render_list, text)
        if converted == text:
            break
        text = converted

    while True:
        converted = _INNERMOST_QUOTE.sub(_render_quote, text)
        if converted == text:
            break
        text = converted

    text = html.unescape(_strip_tags(text))
    text = _CHECKBOX_SPACING.sub(r"[\1] ", text)
    text = protected.restore(text)

    lines = [line.rstrip() for line in text.split("\n")]
    text = _BLANK_RUNS.sub("\n\n", "\n".join(lines)).strip()
    return f"{text}\n" if text else ""
