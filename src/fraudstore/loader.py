"""Bulk loading of tabular files into the fraud store.

Rows are validated through the record models before anything is written,
then stored in a single transaction through the same logic as single-row
writes, so ledger totals and referential checks match. A file with one bad
row, whether it fails validation or a store constraint, loads nothing.
"""

from __future__ import annotations

import dataclasses

import pyarrow as pa
import pydantic as pdt
from loguru import logger

import fraudstore.backends as backends
import fraudstore.errors as errors
import fraudstore.records as records


@dataclasses.dataclass(frozen=True)
class LoadResult:
    """Outcome of a bulk load."""

    table: str
    inserted: int
    updated: int = 0
    ignored_columns: tuple[str, ...] = ()

    @property
    def total(self) -> int:
        return self.inserted + self.updated


def validate_rows(table: str, data: pa.Table) -> list[records.Record]:
    """Validate every row of a table against its record model.

    Null cells are dropped so model defaults apply.

    Raises:
        UnknownTableError: If table is not a stored table.
        RecordValidationError: On the first row failing validation.
    """
    if table not in records.RECORD_TYPES:
        raise errors.UnknownTableError(table, list(records.RECORD_TYPES))
    record_type = records.RECORD_TYPES[table]

    validated: list[records.Record] = []
    for index, row in enumerate(data.to_pylist(), start=1):
        values = {k: v for k, v in row.items() if v is not None}
        try:
            validated.append(record_type.model_validate(values))
        except pdt.ValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(x) for x in err['loc']) or 'row'}: {err['msg']}"
                for err in e.errors()
            )
            raise errors.RecordValidationError(table, index, details) from e
    return validated


def load_table(store: backends.BaseStore, table: str, data: pa.Table) -> LoadResult:
    """Validate and write a PyArrow table into a stored table.

    Columns that are not fields of the table's record model are ignored
    with a warning.

    Args:
        store: Initialized store to write to.
        table: Target table name.
        data: Rows to load.

    Returns:
        LoadResult with insert and update counts.

    Raises:
        UnknownTableError: If table is not a stored table.
        RecordValidationError: If any row fails validation (nothing is written).
        CustomerNotFoundError, TransactionNotFoundError, DuplicateRecordError:
            From the store, for the first row that violates a constraint
            (nothing is written).
    """
    if table not in records.RECORD_TYPES:
        raise errors.UnknownTableError(table, list(records.RECORD_TYPES))

    fields = records.RECORD_TYPES[table].model_fields
    ignored = tuple(name for name in data.column_names if name not in fields)
    if ignored:
        logger.warning(f"Ignoring column(s) not in '{table}': {', '.join(ignored)}")
        data = data.drop_columns(list(ignored))

    validated = validate_rows(table, data)
    flags = store.write_records(table, validated)
    inserted = sum(flags)
    updated = len(flags) - inserted

    logger.info(f"Loaded {len(validated)} row(s) into '{table}'")
    return LoadResult(
        table=table,
        inserted=inserted,
        updated=updated,
        ignored_columns=ignored,
    )
