from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Union

from domainmap.ir.errors import ValidationError


# Maps accepted input keys -> internal field name
FIELD_VARIANTS = {
    "domain": "domain",
    "sourcesystem": "source_system",
    "source_system": "source_system",
    "source system": "source_system",
    "system": "source_system",
    "table": "table",
    "table_name": "table",
}

REQUIRED_FIELDS = ("domain", "source_system", "table")


@dataclass(frozen=True)
class Row:
    """One fact: `source_system` references `table` inside `domain`."""
    domain: str
    source_system: str
    table: str

    @property
    def domain_key(self) -> str:
        return self.domain

    @property
    def system_key(self) -> str:
        # Scoped to the domain so equal system names in two domains stay apart.
        return f"{self.domain}-{self.source_system}"

    @property
    def table_key(self) -> str:
        return self.table

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], index: int) -> "Row":
        """Build a Row from a loosely-keyed mapping, failing on the first missing field."""
        values = {}
        for raw_key, value in data.items():
            name = FIELD_VARIANTS.get(str(raw_key).strip().lower())
            if name and name not in values:
                values[name] = value

        for name in REQUIRED_FIELDS:
            value = values.get(name)
            if value is None or not isinstance(value, str) or not value.strip():
                raise ValidationError(index, name)
            values[name] = value.strip()

        return cls(**values)


RowLike = Union[Row, Mapping[str, Any]]


def parse_rows(rows: Iterable[RowLike]) -> List[Row]:
    """
    Validate a whole batch up front.

    Raises:
        ValidationError: for the first malformed row, with its index
    """
    parsed: List[Row] = []
    for index, row in enumerate(rows):
        if isinstance(row, Row):
            for name in REQUIRED_FIELDS:
                value = getattr(row, name)
                if not isinstance(value, str) or not value.strip():
                    raise ValidationError(index, name)
            parsed.append(row)
        elif isinstance(row, Mapping):
            parsed.append(Row.from_mapping(row, index))
        else:
            raise ValidationError(index, "row", f"Row {index}: expected a mapping, got {type(row).__name__}")
    return parsed
