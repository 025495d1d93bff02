from dataclasses import dataclass
from typing import Any, Iterable, NamedTuple

__all__ = [
    "FilterClause",
    "SingleFieldFilterSpec",
    "MultiFieldFilterSpec",
    "FilterSpec",
    "decode_filter_spec",
    "encode_filter_spec",
    "spec_to_clauses",
    "spec_from_clauses",
    "clauses_from_filters",
    "filters_from_clauses",
    "parse_filter_fields_and_values",
    "format_filters_for_export",
]


# Filter specifiers come in two textual encodings:
#  - single-field: field column = "sector", value column = "wash,protection"
#  - multi-field:  field column = "" (ignored), value column = "sector=wash,protection;province=gaza"
# Clauses sharing a field are OR'd by KoboToolbox; clauses across fields are AND'd.


class FilterClause(NamedTuple):
    field: str
    value: str

    def as_filter(self) -> dict[str, str]:
        return {self.field: self.value}


@dataclass(frozen=True)
class SingleFieldFilterSpec:
    field: str
    values: tuple[str, ...]


@dataclass(frozen=True)
class MultiFieldFilterSpec:
    groups: tuple[tuple[str, tuple[str, ...]], ...]


FilterSpec = SingleFieldFilterSpec | MultiFieldFilterSpec


def _split_values(values: str) -> tuple[str, ...]:
    return tuple(v for v in (s.strip() for s in values.split(",")) if v)


def decode_filter_spec(filter_field: str, filter_value: str) -> FilterSpec:
    """
    Decodes a (field, value) specifier pair from the spreadsheet into one of the two filter encodings. The presence of
    '=' in the value selects the multi-field encoding, in which case the field column is ignored.
    """

    if "=" not in filter_value:
        return SingleFieldFilterSpec(field=filter_field.strip(), values=_split_values(filter_value))

    groups: list[tuple[str, tuple[str, ...]]] = []
    for group in (g.strip() for g in filter_value.split(";")):
        if not group:
            continue
        field, _, values = group.partition("=")
        field = field.strip()
        if field and (value_list := _split_values(values)):
            groups.append((field, value_list))

    return MultiFieldFilterSpec(groups=tuple(groups))


def encode_filter_spec(spec: FilterSpec) -> tuple[str, str]:
    match spec:
        case SingleFieldFilterSpec(field=field, values=values):
            return field, ",".join(values)
        case MultiFieldFilterSpec(groups=groups):
            return "", ";".join(f"{field}={','.join(values)}" for field, values in groups)


def spec_to_clauses(spec: FilterSpec) -> list[FilterClause]:
    match spec:
        case SingleFieldFilterSpec(field=field, values=values):
            return [FilterClause(field, v) for v in values] if field else []
        case MultiFieldFilterSpec(groups=groups):
            return [FilterClause(field, v) for field, values in groups for v in values]


def spec_from_clauses(clauses: Iterable[FilterClause]) -> FilterSpec | None:
    """
    Groups clause values by field, preserving first-seen field order and de-duplicating values per field. Returns None
    if there are no usable clauses.
    """

    field_groups: dict[str, list[str]] = {}
    for field, value in clauses:
        if not field or not value:
            continue
        values = field_groups.setdefault(field, [])
        if value not in values:
            values.append(value)

    if not field_groups:
        return None

    if len(field_groups) == 1:
        ((field, values),) = field_groups.items()
        return SingleFieldFilterSpec(field=field, values=tuple(values))

    return MultiFieldFilterSpec(groups=tuple((f, tuple(vs)) for f, vs in field_groups.items()))


def clauses_from_filters(filters: Iterable[dict[str, Any]] | None) -> list[FilterClause]:
    # Non-string filter values (e.g. numbers) are stringified; the spreadsheet only carries text.
    return [
        FilterClause(str(field), value if isinstance(value, str) else str(value))
        for f in (filters or ())
        for field, value in f.items()
        if value is not None
    ]


def filters_from_clauses(clauses: Iterable[FilterClause]) -> list[dict[str, str]]:
    return [c.as_filter() for c in clauses]


def parse_filter_fields_and_values(filter_field: str, filter_value: str) -> list[FilterClause]:
    return spec_to_clauses(decode_filter_spec(filter_field, filter_value))


def format_filters_for_export(filters: Iterable[dict[str, Any]] | None) -> tuple[str, str]:
    """
    Inverse of parse_filter_fields_and_values, operating on KoboToolbox filter objects. Returns a (field, value)
    specifier pair; ("", "") for an empty or missing filter list.
    """
    if (spec := spec_from_clauses(clauses_from_filters(filters))) is None:
        return "", ""
    return encode_filter_spec(spec)
