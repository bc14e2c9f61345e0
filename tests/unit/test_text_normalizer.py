"""Unit tests for the whitespace and token-estimation helpers."""

from __future__ import annotations

import pytest

from src.utils.text_normalizer import (
    chars_for_tokens,
    count_words,
    estimate_tokens,
    has_encoding_corruption,
    normalize_whitespace,
)


class TestNormalizeWhitespace:
    def test_unifies_line_endings(self) -> None:
        assert normalize_whitespace("one\r\ntwo\rthree") == "one\ntwo\nthree"

    def test_collapses_horizontal_runs(self) -> None:
        assert normalize_whitespace("Cells  \t divide\t\tquickly.") == "Cells divide quickly."

    def test_spaces_around_newlines_removed(self) -> None:
        assert normalize_whitespace("first line   \n   second line") == "first line\nsecond line"

    def test_blank_line_runs_become_paragraph_break(self) -> None:
        assert normalize_whitespace("Intro\n\n\n\n\nBody") == "Intro\n\nBody"

    def test_single_paragraph_break_kept(self) -> None:
        assert normalize_whitespace("Intro\n\nBody") == "Intro\n\nBody"

    def test_strips_ends(self) -> None:
        assert normalize_whitespace("  \n\n text \n ") == "text"

    def test_empty(self) -> None:
        assert normalize_whitespace("") == ""


class TestEstimates:
    @pytest.mark.parametrize(
        "text,expected",
        [("", 0), ("a", 1), ("abcd", 1), ("abcde", 2), ("x" * 400, 100)],
    )
    def test_estimate_tokens_is_ceiling_of_quarter(self, text: str, expected: int) -> None:
        assert estimate_tokens(text) == expected

    def test_chars_for_tokens(self) -> None:
        assert chars_for_tokens(512) == 2048
        assert chars_for_tokens(0) == 0

    def test_count_words(self) -> None:
        assert count_words("Energy  is\nconserved.") == 3
        assert count_words("   ") == 0


class TestEncodingCorruption:
    def test_replacement_character(self) -> None:
        assert has_encoding_corruption("Entropy � increases") is True

    def test_question_mark_run(self) -> None:
        assert has_encoding_corruption("The symbol ??? denotes") is True

    def test_clean_text(self) -> None:
        assert has_encoding_corruption("Why? Because energy is conserved.") is False
