"""Quote-aware tokenizer and segmenter for command lines.

The lexer is detection oriented: it understands enough shell syntax to tell
an invocation from data (quotes, escapes, ``$( … )`` and backtick
substitutions, ``|``/``&&``/``||``/``;`` separators) and nothing more.
"""

from __future__ import annotations

import re

from shellware.core.types import Segment, Token

QUOTES = ("'", '"')
SEGMENT_OPERATORS = ("&&", "||", "|", ";", "&")
BOUNDARY_CHARS = frozenset(" \t\n\r;|&(`")
_WHITESPACE_RE = re.compile(r"\S+")


def tokenize(line: str) -> list[Token]:
    """Split a line into word, quoted and operator tokens.

    Quote characters stay in the token text. Substitutions are kept inside
    the word they belong to, so ``X=$(aws s3 ls)`` is a single token. An
    unterminated quote or substitution extends its token to the end of line.
    """

    tokens: list[Token] = []
    pos = 0
    length = len(line)
    while pos < length:
        char = line[pos]
        if char.isspace():
            pos += 1
            continue
        operator = _operator_at(line, pos)
        if operator:
            tokens.append(Token(text=operator, kind="operator", start=pos, end=pos + len(operator)))
            pos += len(operator)
            continue
        end = _word_end(line, pos)
        text = line[pos:end]
        kind = "quoted" if _is_fully_quoted(text) else "word"
        tokens.append(Token(text=text, kind=kind, start=pos, end=end))
        pos = end
    return tokens


def naive_tokenize(line: str) -> list[Token]:
    """Tokenize without trusting the quotes when they do not balance."""

    if has_balanced_quotes(line):
        return tokenize(line)
    return [Token(text=m.group(), kind="word", start=m.start(), end=m.end()) for m in _WHITESPACE_RE.finditer(line)]


def split_segments(tokens: list[Token]) -> list[Segment]:
    """Group tokens into invocations separated by pipe/logical/sequence operators."""

    segments: list[Segment] = []
    current: list[Token] = []
    for token in tokens:
        if token.is_operator:
            if current:
                segments.append(Segment(tokens=tuple(current), separator=token.text))
            current = []
            continue
        current.append(token)
    if current:
        segments.append(Segment(tokens=tuple(current)))
    return segments


def has_balanced_quotes(line: str) -> bool:
    quote = ""
    pos = 0
    while pos < len(line):
        char = line[pos]
        if char == "\\" and quote != "'":
            pos += 2
            continue
        if not quote and char in QUOTES:
            quote = char
        elif quote and char == quote:
            quote = ""
        pos += 1
    return not quote


def unquote(text: str) -> str:
    """Strip one matching pair of surrounding quotes."""

    if _is_fully_quoted(text):
        return text[1:-1]
    return text


def is_word_boundary(line: str, pos: int) -> bool:
    """Whether a word may start at ``pos`` in command position."""

    return pos == 0 or line[pos - 1] in BOUNDARY_CHARS


def extract_paren_substitution(line: str, start: int) -> tuple[str, int] | None:
    """Read a ``$( … )`` body; ``start`` is the index right after ``$(``.

    Returns the body and the index after the closing paren, or None when the
    parens never balance.
    """

    depth = 1
    quote = ""
    pos = start
    while pos < len(line):
        char = line[pos]
        if char == "\\" and quote != "'":
            pos += 2
            continue
        if quote:
            if char == quote:
                quote = ""
        elif char in QUOTES:
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return line[start:pos], pos + 1
        pos += 1
    return None


def extract_backtick_substitution(line: str, start: int) -> tuple[str, int] | None:
    """Read a backtick body; ``start`` is the index right after the opening backtick."""

    pos = start
    while pos < len(line):
        char = line[pos]
        if char == "\\":
            pos += 2
            continue
        if char == "`":
            return line[start:pos], pos + 1
        pos += 1
    return None


def find_command_end(line: str, start: int) -> int:
    """Index of the first unquoted ``|``, ``;`` or ``&&`` at or after ``start``."""

    quote = ""
    pos = start
    while pos < len(line):
        char = line[pos]
        if char == "\\" and quote != "'":
            pos += 2
            continue
        if quote:
            if char == quote:
                quote = ""
            pos += 1
            continue
        if char in QUOTES:
            quote = char
        elif char == "$" and line[pos + 1 : pos + 2] == "(":
            extracted = extract_paren_substitution(line, pos + 2)
            if extracted is not None:
                pos = extracted[1]
                continue
        elif char == "`":
            extracted = extract_backtick_substitution(line, pos + 1)
            if extracted is not None:
                pos = extracted[1]
                continue
        elif char in "|;":
            return pos
        elif char == "&" and line[pos + 1 : pos + 2] == "&":
            return pos
        pos += 1
    return len(line)


def _operator_at(line: str, pos: int) -> str:
    for operator in SEGMENT_OPERATORS:
        if line.startswith(operator, pos):
            return operator
    return ""


def _word_end(line: str, pos: int) -> int:
    quote = ""
    length = len(line)
    while pos < length:
        char = line[pos]
        if char == "\\" and quote != "'":
            pos += 2
            continue
        if quote:
            if char == quote:
                quote = ""
            pos += 1
            continue
        if char in QUOTES:
            quote = char
            pos += 1
            continue
        if char == "$" and line[pos + 1 : pos + 2] == "(":
            extracted = extract_paren_substitution(line, pos + 2)
            pos = extracted[1] if extracted is not None else length
            continue
        if char == "`":
            extracted = extract_backtick_substitution(line, pos + 1)
            pos = extracted[1] if extracted is not None else length
            continue
        if char.isspace() or _operator_at(line, pos):
            return pos
        pos += 1
    return min(pos, length)


def _is_fully_quoted(text: str) -> bool:
    if len(text) < 2 or text[0] not in QUOTES or text[-1] != text[0]:
        return False
    return has_balanced_quotes(text) and _closing_quote_index(text) == len(text) - 1


def _closing_quote_index(text: str) -> int:
    quote = text[0]
    pos = 1
    while pos < len(text):
        if text[pos] == "\\" and quote != "'":
            pos += 2
            continue
        if text[pos] == quote:
            return pos
        pos += 1
    return -1
