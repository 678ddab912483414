"""Shared core dataclasses."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Literal, TypeAlias

TokenKind = Literal["word", "operator", "quoted"]
ContextKind = Literal["direct", "subst_paren", "subst_backtick", "tokenized"]
OutcomeKind = Literal["pass", "rewrite", "block"]

NOOP_LINE = " :"


@dataclass(frozen=True)
class Token:
    """One classified slice of a command line."""

    text: str
    kind: TokenKind
    start: int
    end: int

    @property
    def is_operator(self) -> bool:
        return self.kind == "operator"


@dataclass(frozen=True)
class Segment:
    """Contiguous tokens forming one invocation."""

    tokens: tuple[Token, ...]
    separator: str = ""  # operator that ended the segment, empty at line end

    @property
    def words(self) -> list[str]:
        return [token.text for token in self.tokens]


@dataclass(frozen=True)
class DetectedCommand:
    """Command invocation found inside a line."""

    kind: ContextKind
    pattern: str
    text: str
    start: int
    end: int


@dataclass(frozen=True)
class PluginOutcome:
    """What a plugin wants done with the current line."""

    kind: OutcomeKind
    line: str | None = None
    message: str = ""

    @classmethod
    def no_opinion(cls) -> PluginOutcome:
        return cls(kind="pass")

    @classmethod
    def rewrite(cls, line: str) -> PluginOutcome:
        return cls(kind="rewrite", line=line)

    @classmethod
    def block(cls, message: str = "") -> PluginOutcome:
        return cls(kind="block", message=message)


PluginHandler: TypeAlias = Callable[[str], PluginOutcome | str | None]


@dataclass(frozen=True)
class Plugin:
    """Registered plugin: a handler plus the patterns that route to it."""

    name: str
    handler: PluginHandler
    patterns: tuple[str, ...]
    commands: tuple[str, ...] = ()


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of one dispatch cycle."""

    line: str
    blocked: bool = False
    message: str = ""
    plugins: list[str] = field(default_factory=list)
    rewritten_by: list[str] = field(default_factory=list)
