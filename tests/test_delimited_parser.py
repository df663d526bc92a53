"""
tests/test_delimited_parser.py

Unit tests for delimited text parsing.

All tests are pure Python: no network, no files.
"""

from __future__ import annotations

import pytest

from planning_connector.exceptions import ConfigurationError, DelimitedParseError
from planning_connector.parsers.delimited import format_delimited, parse_delimited


class TestParseDelimited:
    def test_parses_header_and_rows(self) -> None:
        rows = parse_delimited("Name,Value\nA,1\nB,2", ",", '"')
        assert rows == [["Name", "Value"], ["A", "1"], ["B", "2"]]

    def test_trailing_newline_adds_no_empty_row(self) -> None:
        assert parse_delimited("a,b\n1,2\n", ",", '"') == [["a", "b"], ["1", "2"]]

    def test_crlf_records(self) -> None:
        assert parse_delimited("a,b\r\n1,2\r\n", ",", '"') == [["a", "b"], ["1", "2"]]

    def test_quoted_field_keeps_line_break(self) -> None:
        rows = parse_delimited('id,comment\n1,"first line\nsecond line"\n', ",", '"')
        assert rows == [["id", "comment"], ["1", "first line\nsecond line"]]

    def test_doubled_quote_is_literal(self) -> None:
        rows = parse_delimited('a\n"say ""hi"""\n', ",", '"')
        assert rows == [["a"], ['say "hi"']]

    def test_quoted_field_keeps_separator(self) -> None:
        assert parse_delimited('"x,y",z', ",", '"') == [["x,y", "z"]]

    def test_custom_separator_and_quote(self) -> None:
        rows = parse_delimited("name;note\n'a;b';'it''s'\n", ";", "'")
        assert rows == [["name", "note"], ["a;b", "it's"]]

    def test_tab_separator(self) -> None:
        assert parse_delimited("a\tb\n1\t2\n", "\t", '"') == [["a", "b"], ["1", "2"]]

    def test_ragged_rows_pass_through(self) -> None:
        rows = parse_delimited("a,b,c\n1\n1,2,3,4\n", ",", '"')
        assert rows == [["a", "b", "c"], ["1"], ["1", "2", "3", "4"]]

    def test_blank_line_in_middle_is_single_empty_cell(self) -> None:
        assert parse_delimited("a\n\nb\n", ",", '"') == [["a"], [""], ["b"]]

    def test_empty_text_yields_no_rows(self) -> None:
        assert parse_delimited("", ",", '"') == []

    def test_is_deterministic(self) -> None:
        text = 'h1,h2\n"x\ny",2\n'
        assert parse_delimited(text, ",", '"') == parse_delimited(text, ",", '"')

    @pytest.mark.parametrize(
        "separator, quote",
        [
            ("", '"'),
            (",,", '"'),
            (",", ""),
            (",", '""'),
            ("||", "''"),
        ],
    )
    def test_rejects_delimiters_that_are_not_one_character(self, separator: str, quote: str) -> None:
        with pytest.raises(ConfigurationError):
            parse_delimited("a,b", separator, quote)

    def test_rejects_same_separator_and_quote(self) -> None:
        with pytest.raises(ConfigurationError):
            parse_delimited("a,b", ",", ",")

    def test_rejects_line_break_separator(self) -> None:
        with pytest.raises(ConfigurationError):
            parse_delimited("a,b", "\n", '"')

    def test_configuration_error_is_raised_for_any_text(self) -> None:
        with pytest.raises(ConfigurationError):
            parse_delimited("", ";;", '"')

    def test_text_after_closing_quote_is_malformed(self) -> None:
        with pytest.raises(DelimitedParseError):
            parse_delimited('a,"b"c\n', ",", '"')

    def test_unterminated_quote_is_malformed(self) -> None:
        with pytest.raises(DelimitedParseError):
            parse_delimited('a,"unterminated\n', ",", '"')


class TestRoundTrip:
    @pytest.mark.parametrize(
        "text, separator, quote",
        [
            ("a,b\n1,2\n", ",", '"'),
            ('name,comment\nx,"has, comma"\ny,"has ""quotes"""\nz,"multi\nline"\n', ",", '"'),
            ("h1;h2\n'a;b';c\n;\n", ";", "'"),
            ("a\tb\n\t\n", "\t", '"'),
            ("only\n\nrows\n", ",", '"'),
        ],
    )
    def test_reserialized_rows_parse_to_same_table(self, text: str, separator: str, quote: str) -> None:
        table = parse_delimited(text, separator, quote)
        again = parse_delimited(format_delimited(table, separator, quote), separator, quote)
        assert again == table

    def test_format_quotes_only_when_needed(self) -> None:
        assert format_delimited([["a", "b,c", 'd"e']], ",", '"') == 'a,"b,c","d""e"\n'
