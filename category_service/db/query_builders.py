"""Query builders returning (sql, params) tuples for the async db helpers.

Usage Examples:
    query, params = (SelectQuery("categories")
        .where("status = $1", "active")
        .where("$1 = ANY(applicable_genders)", "men")
        .order_by("sort_order ASC")
        .limit(10)
        .build())

    rows = await fetch_all(query, *params)

    query, params = build_update("categories", {"name": "Shoes"}, "id = $1", entity_id)

Notes:
    - Placeholders are $1, $2, ... and are numbered per where() call; the
      builder renumbers them across clauses
    - Builders are immutable: each method returns a new instance
    - Table and column names must pass validate_identifier()
"""

import logging
import re
from dataclasses import dataclass, replace
from typing import Any, Dict, Tuple

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\$(\d+)")
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_identifier(identifier: str) -> bool:
    """True if identifier is a plain SQL identifier (letters, digits, underscore)."""
    return bool(identifier) and bool(_IDENTIFIER.match(identifier))


def renumber_placeholders(condition: str, offset: int) -> str:
    """Shift every $N placeholder in condition by offset."""
    return _PLACEHOLDER.sub(lambda match: f"${int(match.group(1)) + offset}", condition)


@dataclass(frozen=True)
class SelectQuery:
    """
    Fluent builder for SELECT queries.

    Example:
        query, params = (SelectQuery("subcategories")
            .where("parent_id = $1", parent_id)
            .where("NOT is_deleted")
            .order_by("sort_order ASC")
            .build())
    """

    table: str
    select: Tuple[str, ...] = ()
    conditions: Tuple[str, ...] = ()
    params: Tuple[Any, ...] = ()
    ordering: str = ""
    limit_value: int = -1
    offset_value: int = -1

    def __post_init__(self):
        if not validate_identifier(self.table):
            raise ValueError(f"Invalid table name: {self.table}")

    def columns(self, *cols: str) -> "SelectQuery":
        return replace(self, select=cols)

    def where(self, condition: str, *params: Any) -> "SelectQuery":
        """Add a condition; multiple where() calls are combined with AND."""
        return replace(
            self,
            conditions=self.conditions + (renumber_placeholders(condition, len(self.params)),),
            params=self.params + params,
        )

    def order_by(self, order: str) -> "SelectQuery":
        return replace(self, ordering=order)

    def limit(self, n: int) -> "SelectQuery":
        return replace(self, limit_value=n)

    def offset(self, n: int) -> "SelectQuery":
        return replace(self, offset_value=n)

    def count(self) -> "SelectQuery":
        """Same filters, COUNT(*) instead of rows, no ordering or paging."""
        return replace(self, select=("COUNT(*)",), ordering="", limit_value=-1, offset_value=-1)

    def build(self) -> Tuple[str, Tuple[Any, ...]]:
        columns = ", ".join(self.select) if self.select else "*"
        parts = [f"SELECT {columns} FROM {self.table}"]

        if self.conditions:
            parts.append("WHERE " + " AND ".join(f"({clause})" for clause in self.conditions))
        if self.ordering:
            parts.append(f"ORDER BY {self.ordering}")
        if self.limit_value >= 0:
            parts.append(f"LIMIT {self.limit_value}")
        if self.offset_value >= 0:
            parts.append(f"OFFSET {self.offset_value}")

        return " ".join(parts), self.params


def build_update(
    table: str,
    data: Dict[str, Any],
    condition: str,
    *condition_params: Any,
    touch_column: str = "updated_at",
) -> Tuple[str, Tuple[Any, ...]]:
    """
    Build ``UPDATE table SET ... WHERE condition RETURNING *``.

    The condition's own placeholders start at $1 and are shifted past the
    SET values.

    Raises:
        ValueError: If a table or column name is not a plain identifier
    """
    if not validate_identifier(table):
        raise ValueError(f"Invalid table name: {table}")

    assignments = []
    values = []
    for index, (column, value) in enumerate(data.items(), start=1):
        if not validate_identifier(column):
            raise ValueError(f"Invalid column name: {column}")
        assignments.append(f"{column} = ${index}")
        values.append(value)

    if touch_column:
        assignments.append(f"{touch_column} = NOW()")
    if not assignments:
        raise ValueError("Nothing to update")

    where = renumber_placeholders(condition, len(values))
    query = f"UPDATE {table} SET {', '.join(assignments)} WHERE {where} RETURNING *"
    return query, tuple(values) + condition_params


def build_insert(table: str, data: Dict[str, Any]) -> Tuple[str, Tuple[Any, ...]]:
    """Build ``INSERT INTO table (...) VALUES (...) RETURNING *``."""
    if not validate_identifier(table):
        raise ValueError(f"Invalid table name: {table}")
    for column in data:
        if not validate_identifier(column):
            raise ValueError(f"Invalid column name: {column}")

    columns = ", ".join(data.keys())
    placeholders = ", ".join(f"${i}" for i in range(1, len(data) + 1))
    query = f"INSERT INTO {table} ({columns}) VALUES ({placeholders}) RETURNING *"
    return query, tuple(data.values())
