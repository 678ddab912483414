"""S3 URI auto-qualification for ``aws s3`` commands."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from shellware.core.command_detector import CommandDetector
from shellware.core.lexer import SEGMENT_OPERATORS, tokenize, unquote
from shellware.core.types import DetectedCommand, PluginOutcome, Token
from shellware.plugins.aws_session import AwsSession

S3_SCHEME = "s3://"
BUCKET_ACTIONS = frozenset({"mb", "rb"})
TRANSFER_ACTIONS = frozenset({"cp", "mv", "sync", "ls"})
REMOVE_ACTIONS = frozenset({"rm"})

BUCKET_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9.-]*[a-z0-9]$")
BUCKET_PATH_RE = re.compile(r"^[a-z0-9][a-z0-9.-]*[a-z0-9]/.+")
LOCAL_PATH_RE = re.compile(r"^\.?/")
FILE_EXTENSION_RE = re.compile(r"^[A-Za-z]{1,4}$")


class _NoChange:
    """Marker for "inspected, nothing to rewrite"."""

    _instance: _NoChange | None = None

    def __new__(cls) -> _NoChange:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_CHANGE"


NO_CHANGE = _NoChange()


def is_bucket_name(text: str) -> bool:
    return 3 <= len(text) <= 63 and BUCKET_NAME_RE.match(text) is not None


def is_bucket_path(text: str) -> bool:
    return BUCKET_PATH_RE.match(text) is not None


def is_flag(text: str) -> bool:
    # a lone "-" is the stdin/stdout placeholder, not a flag
    return text.startswith("-") and text != "-"


def looks_like_local_file(text: str) -> bool:
    """``report.csv`` yes, ``bucket/report.csv`` and ``my.bucket.name`` no."""

    if "/" in text or "." not in text:
        return False
    return FILE_EXTENSION_RE.match(text.rsplit(".", 1)[1]) is not None


def s3_uri_replacements(words: Sequence[str], start: int) -> dict[int, str]:
    """Map word index → corrected text for the ``aws`` invocation at ``start``."""

    if start + 2 >= len(words) or words[start + 1] != "s3":
        return {}
    action = words[start + 2]
    first_arg = start + 3
    last_arg = _segment_end(words, first_arg)

    if action in BUCKET_ACTIONS:
        return _bucket_replacements(words, first_arg, last_arg)
    if action in TRANSFER_ACTIONS:
        return _transfer_replacements(words, first_arg, last_arg)
    if action in REMOVE_ACTIONS:
        return _remove_replacements(words, first_arg, last_arg)
    return {}


def rewrite_s3_uris(
    tokens: Sequence[Token] | Sequence[str],
    start: int,
    *,
    source: str | None = None,
) -> str | _NoChange:
    """Qualify bucket references of the ``aws s3`` call at ``tokens[start]``.

    With ``source`` and real tokens, corrections are spliced into the source
    so everything else keeps its spacing; otherwise words are joined with
    single spaces. Returns ``NO_CHANGE`` when no word needed a prefix.
    """

    words = [token.text if isinstance(token, Token) else token for token in tokens]
    replacements = s3_uri_replacements(words, start)
    if not replacements:
        return NO_CHANGE

    if source is not None and all(isinstance(token, Token) for token in tokens):
        edits = [(tokens[index].start, tokens[index].end, text) for index, text in replacements.items()]
        return apply_edits(source, edits)  # type: ignore[union-attr]

    fixed = list(words)
    for index, text in replacements.items():
        fixed[index] = text
    return " ".join(fixed)


def apply_edits(source: str, edits: Sequence[tuple[int, int, str]]) -> str:
    """Replace non-overlapping ``(start, end, text)`` spans of ``source``."""

    result = source
    for start, end, text in sorted(set(edits), reverse=True):
        result = result[:start] + text + result[end:]
    return result


def _segment_end(words: Sequence[str], first: int) -> int:
    for index in range(first, len(words)):
        if words[index] in SEGMENT_OPERATORS:
            return index
    return len(words)


def _prefixed(text: str) -> bool:
    return text.startswith(S3_SCHEME) or unquote(text).startswith(S3_SCHEME)


def _follows_flag(words: Sequence[str], index: int) -> bool:
    previous = words[index - 1]
    return is_flag(previous) and "=" not in previous


def _bucket_replacements(words: Sequence[str], first: int, last: int) -> dict[int, str]:
    for index in range(first, last):
        arg = words[index]
        if _prefixed(arg) or is_flag(arg) or _follows_flag(words, index) or LOCAL_PATH_RE.match(arg):
            continue
        stripped = unquote(arg)
        if is_bucket_name(stripped):
            logger.debug("s3.prefix bucket={!r}", arg)
            return {index: S3_SCHEME + stripped}
    return {}


def _transfer_replacements(words: Sequence[str], first: int, last: int) -> dict[int, str]:
    replacements: dict[int, str] = {}
    for index in range(first, last):
        arg = words[index]
        if _prefixed(arg) or is_flag(arg) or _follows_flag(words, index) or LOCAL_PATH_RE.match(arg):
            continue
        stripped = unquote(arg)
        if looks_like_local_file(stripped):
            logger.debug("s3.skip_local_file arg={!r}", arg)
            continue
        if is_bucket_name(stripped) or is_bucket_path(stripped):
            replacements[index] = S3_SCHEME + stripped
    return replacements


def _remove_replacements(words: Sequence[str], first: int, last: int) -> dict[int, str]:
    # a bare bucket name is ambiguous (object vs. bucket) and stays untouched
    replacements: dict[int, str] = {}
    for index in range(first, last):
        arg = words[index]
        if _prefixed(arg) or is_flag(arg) or LOCAL_PATH_RE.match(arg):
            continue
        stripped = unquote(arg)
        if is_bucket_path(stripped):
            replacements[index] = S3_SCHEME + stripped
    return replacements


class S3UriPlugin:
    """Rewrite ``aws s3`` bucket arguments and keep the AWS session alive."""

    name = "aws_s3_uri"
    patterns = ("aws*", "*aws *")
    commands = ("aws",)

    def __init__(self, session: AwsSession | None = None, detector: CommandDetector | None = None) -> None:
        self.session = session if session is not None else AwsSession()
        self._detector = detector or CommandDetector()

    def __call__(self, line: str) -> PluginOutcome:
        contexts = self._detector.detect(line, self.commands)
        if not contexts:
            return PluginOutcome.no_opinion()

        if any(_is_sso_logout(context) for context in contexts):
            cleared = self.session.clear_all()
            logger.debug("aws.sso_logout cleared={}", cleared)
            return PluginOutcome.no_opinion()

        self.session.ensure_valid()

        corrected = self.correct(line, contexts)
        if corrected is NO_CHANGE:
            return PluginOutcome.no_opinion()
        return PluginOutcome.rewrite(corrected)  # type: ignore[arg-type]

    def correct(self, line: str, contexts: Sequence[DetectedCommand] | None = None) -> str | _NoChange:
        """Apply S3 URI corrections to every detected ``aws`` invocation of ``line``."""

        if contexts is None:
            contexts = self._detector.detect(line, self.commands) or ()
        edits: list[tuple[int, int, str]] = []
        for context in contexts:
            tokens = tokenize(context.text)
            start = next((index for index, token in enumerate(tokens) if token.text == "aws"), None)
            if start is None:
                continue
            words = [token.text for token in tokens]
            for index, text in s3_uri_replacements(words, start).items():
                token = tokens[index]
                edits.append((context.start + token.start, context.start + token.end, text))
        if not edits:
            return NO_CHANGE
        return apply_edits(line, edits)


def _is_sso_logout(context: DetectedCommand) -> bool:
    words = context.text.split()
    return words[:3] == ["aws", "sso", "logout"]


@dataclass(frozen=True)
class SelftestCase:
    """One rewriter regression: input line and expected output."""

    line: str
    expected: str


SELFTEST_CASES: tuple[SelftestCase, ...] = (
    SelftestCase("aws s3 mb test-bucket-example", "aws s3 mb s3://test-bucket-example"),
    SelftestCase("aws s3 rb test-bucket-example --force", "aws s3 rb s3://test-bucket-example --force"),
    SelftestCase("aws s3 ls test-bucket-example", "aws s3 ls s3://test-bucket-example"),
    SelftestCase("aws s3 cp file.txt test-bucket-example", "aws s3 cp file.txt s3://test-bucket-example"),
    SelftestCase("aws s3 cp file.txt test-bucket-example/path/", "aws s3 cp file.txt s3://test-bucket-example/path/"),
    SelftestCase("aws s3 rm test-bucket-example/object.txt", "aws s3 rm s3://test-bucket-example/object.txt"),
    SelftestCase("aws s3 rm test-bucket-example", "aws s3 rm test-bucket-example"),
    SelftestCase(
        "aws s3 ls --region us-east-1 test-bucket-example",
        "aws s3 ls --region us-east-1 s3://test-bucket-example",
    ),
    SelftestCase("aws s3 mb s3://already-prefixed", "aws s3 mb s3://already-prefixed"),
    SelftestCase(
        "aws s3 ls --profile foo --region us-east-1 test-bucket-example",
        "aws s3 ls --profile foo --region us-east-1 s3://test-bucket-example",
    ),
    SelftestCase('aws s3 ls "test-bucket-example"', "aws s3 ls s3://test-bucket-example"),
    SelftestCase(
        "aws s3 cp file.txt test-bucket-example/path.to/object.json",
        "aws s3 cp file.txt s3://test-bucket-example/path.to/object.json",
    ),
    SelftestCase(
        "aws s3 sync ./localdir test-bucket-example/prefix/",
        "aws s3 sync ./localdir s3://test-bucket-example/prefix/",
    ),
    SelftestCase(
        "aws s3 mv file.txt test-bucket-example/dir/file.txt",
        "aws s3 mv file.txt s3://test-bucket-example/dir/file.txt",
    ),
)


@dataclass(frozen=True)
class SelftestResult:
    case: SelftestCase
    actual: str

    @property
    def passed(self) -> bool:
        return self.actual == self.case.expected


def run_selftest(cases: Sequence[SelftestCase] = SELFTEST_CASES) -> list[SelftestResult]:
    """Run the rewriter over ``cases`` without touching AWS."""

    results: list[SelftestResult] = []
    for case in cases:
        tokens = tokenize(case.line)
        start = next((index for index, token in enumerate(tokens) if token.text == "aws"), 0)
        corrected = rewrite_s3_uris(tokens, start, source=case.line)
        actual = case.line if corrected is NO_CHANGE else str(corrected)
        results.append(SelftestResult(case=case, actual=actual))
    return results
