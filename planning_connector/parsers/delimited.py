"""
planning_connector/parsers/delimited.py

Delimited text parsing with a configurable separator and quote character.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Sequence

from planning_connector.domain.model_import import DelimiterConfig, ParsedTable
from planning_connector.exceptions import DelimitedParseError


def parse_delimited(text: str, column_separator: str, quote_char: str) -> ParsedTable:
    """
    Parse delimited text into rows of cell strings.

    Follows RFC 4180 with the separator and quote character substituted:
    records end at a line break, quoted fields may span line breaks, and a
    doubled quote inside a quoted field is a literal quote. Rows are
    returned as-is, without any column-count validation.

    Raises:
        ConfigurationError: either delimiter is not exactly one character.
        DelimitedParseError: the text has malformed quoting.
    """

    config = DelimiterConfig.from_strings(column_separator, quote_char)
    reader = csv.reader(
        io.StringIO(text, newline=""),
        delimiter=config.column_separator,
        quotechar=config.quote_char,
        doublequote=True,
        skipinitialspace=False,
        strict=True,
    )

    rows: ParsedTable = []
    try:
        for record in reader:
            # A blank line is a record holding one empty cell.
            rows.append(record if record else [""])
    except csv.Error as exc:
        raise DelimitedParseError(f"Invalid delimited data at line {reader.line_num}: {exc}") from exc
    return rows


def format_delimited(
    rows: Iterable[Sequence[str]],
    column_separator: str,
    quote_char: str,
) -> str:
    """
    Serialize rows with the same dialect accepted by ``parse_delimited``.
    """

    config = DelimiterConfig.from_strings(column_separator, quote_char)
    buffer = io.StringIO(newline="")
    writer = csv.writer(
        buffer,
        delimiter=config.column_separator,
        quotechar=config.quote_char,
        doublequote=True,
        quoting=csv.QUOTE_MINIMAL,
        lineterminator="\n",
    )
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue()
