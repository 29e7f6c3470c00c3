"""A parser for the fixed-width tables kubectl prints.

Column boundaries come from where each header field starts. A cell spans from its column start
up to the next column start, and the last column takes the rest of the line, so it is the only
one allowed to contain spaces.
"""

import re
from typing import NamedTuple, Optional

HEADER_FIELD = re.compile(r"\S+")


class Column(NamedTuple):
    name: str
    start: int
    end: Optional[int]  # None means up to the end of the line


def detect_columns(header: str) -> list[Column]:
    fields = list(HEADER_FIELD.finditer(header))
    if not fields:
        raise ValueError("Table header is empty")

    return [
        Column(
            name=field.group().lower(),
            start=field.start(),
            end=fields[i + 1].start() if i + 1 < len(fields) else None,
        )
        for i, field in enumerate(fields)
    ]


def parse_row(row: str, columns: list[Column]) -> dict[str, str]:
    return {column.name: row[column.start : column.end].strip() for column in columns}


def parse_table(text: str) -> list[dict[str, str]]:
    """Parse a header line plus rows into one dict per row, keyed by lowercased column name.

    Blank lines are skipped. Missing cells come back as empty strings.
    """

    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return []

    columns = detect_columns(lines[0])
    return [parse_row(row, columns) for row in lines[1:]]
