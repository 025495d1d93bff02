from typing import Iterable

from ..models import PermissionRow
from .kinds import TSV_COLUMNS

__all__ = [
    "TSVFormatError",
    "TEMPLATE_ROWS",
    "rows_to_tsv",
    "template_tsv",
    "parse_tsv",
]


class TSVFormatError(Exception):
    pass


TEMPLATE_ROWS: tuple[tuple[str, ...], ...] = (
    # Full access
    ("steve_kobo", *(["TRUE"] * 8), *(["FALSE", "", ""] * 4)),
    # View form + add submissions; view/validate only submissions from their organization
    (
        "bob_kobo",
        "TRUE", "FALSE", "FALSE", "TRUE", "FALSE", "FALSE", "FALSE", "FALSE",
        "TRUE", "organization", "bar",
        "FALSE", "", "",
        "FALSE", "", "",
        "TRUE", "organization", "bar",
    ),
    # View form; view only their own submissions
    (
        "alice_viewer",
        "TRUE", *(["FALSE"] * 7),
        "TRUE", "_submitted_by", "alice_viewer",
        *(["FALSE", "", ""] * 3),
    ),
)


def _join(lines: Iterable[Iterable[str]]) -> str:
    return "\n".join("\t".join(line) for line in lines)


def _row_cells(row: PermissionRow) -> tuple[str, ...]:
    return tuple(getattr(row, c) for c in TSV_COLUMNS)


def rows_to_tsv(rows: Iterable[PermissionRow]) -> str:
    return _join((TSV_COLUMNS, *(_row_cells(r) for r in rows)))


def template_tsv() -> str:
    return _join((TSV_COLUMNS, *TEMPLATE_ROWS))


def parse_tsv(data: str) -> list[PermissionRow]:
    """
    Parses spreadsheet data pasted or exported as TSV into permission rows. The first line is the header; it must
    contain a username column, but may otherwise contain any subset of the template's columns in any order. Data lines
    whose cell count differs from the header's are skipped, as are blank lines.
    """

    # Only blank lines are dropped; stripping the whole text would eat the trailing empty cells of the last row.
    lines = [line for line in data.split("\n") if line.strip()]
    if len(lines) < 2:
        raise TSVFormatError("Data must have at least a header row and one data row")

    headers = [h.strip() for h in lines[0].split("\t")]
    if "username" not in headers:
        raise TSVFormatError("Missing required column: username")

    rows: list[PermissionRow] = []
    for line in lines[1:]:
        values = line.split("\t")
        if len(values) != len(headers):
            continue
        rows.append(PermissionRow.model_validate(dict(zip(headers, (v.strip() for v in values)))))

    return rows
