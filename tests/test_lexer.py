from shellware.core.lexer import (
    extract_backtick_substitution,
    extract_paren_substitution,
    find_command_end,
    has_balanced_quotes,
    is_word_boundary,
    naive_tokenize,
    split_segments,
    tokenize,
    unquote,
)


def test_tokenize_splits_words_and_operators() -> None:
    tokens = tokenize("aws s3 ls | grep x")
    assert [token.text for token in tokens] == ["aws", "s3", "ls", "|", "grep", "x"]
    assert [token.kind for token in tokens] == ["word", "word", "word", "operator", "word", "word"]
    assert (tokens[0].start, tokens[0].end) == (0, 3)


def test_tokenize_keeps_quoted_text_whole() -> None:
    tokens = tokenize('echo "aws s3 ls" && ls')
    assert [token.text for token in tokens] == ["echo", '"aws s3 ls"', "&&", "ls"]
    assert tokens[1].kind == "quoted"
    assert tokens[2].is_operator


def test_tokenize_keeps_substitution_inside_its_word() -> None:
    tokens = tokenize("X=$(aws s3 ls | head) echo")
    assert [token.text for token in tokens] == ["X=$(aws s3 ls | head)", "echo"]


def test_tokenize_offsets_slice_the_source() -> None:
    line = "aws  s3   cp a 'b c'"
    for token in tokenize(line):
        assert line[token.start : token.end] == token.text


def test_naive_tokenize_falls_back_to_whitespace_on_unbalanced_quotes() -> None:
    tokens = naive_tokenize("echo 'unterminated aws s3")
    assert [token.text for token in tokens] == ["echo", "'unterminated", "aws", "s3"]
    assert tokens[2].start == 19


def test_split_segments_records_separators() -> None:
    segments = split_segments(tokenize("a b | c ; d"))
    assert [segment.words for segment in segments] == [["a", "b"], ["c"], ["d"]]
    assert [segment.separator for segment in segments] == ["|", ";", ""]


def test_has_balanced_quotes() -> None:
    assert has_balanced_quotes('a "b" c')
    assert has_balanced_quotes('a \\"b')
    assert not has_balanced_quotes("it's")


def test_unquote_strips_one_matching_pair() -> None:
    assert unquote('"bucket"') == "bucket"
    assert unquote("'bucket'") == "bucket"
    assert unquote('"bucket') == '"bucket'
    assert unquote('"a"b"') == '"a"b"'


def test_extract_paren_substitution_handles_nesting() -> None:
    line = "$(a $(b) c) d"
    assert extract_paren_substitution(line, 2) == ("a $(b) c", 11)
    assert extract_paren_substitution("$(never closed", 2) is None


def test_extract_backtick_substitution() -> None:
    assert extract_backtick_substitution("`aws s3 ls` x", 1) == ("aws s3 ls", 11)
    assert extract_backtick_substitution("`open", 1) is None


def test_find_command_end_stops_at_unquoted_separators() -> None:
    assert find_command_end("aws s3 ls | grep", 0) == 10
    assert find_command_end('aws "a|b" x', 0) == 11
    assert find_command_end("aws $(a | b) && c", 0) == 13


def test_is_word_boundary() -> None:
    assert is_word_boundary("aws", 0)
    assert is_word_boundary("x;aws", 2)
    assert is_word_boundary("$(aws", 2)
    assert not is_word_boundary("xaws", 1)
