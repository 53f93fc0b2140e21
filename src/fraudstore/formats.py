"""Format classes for reading and writing tabular files.

Bulk loads and report exports move data as PyArrow tables. Each format class
owns its serialization logic; the format is chosen from the file suffix.
"""

from __future__ import annotations

import abc
from pathlib import Path
from typing import Literal

import pyarrow as pa
import pyarrow.csv as pacsv
import pyarrow.parquet as pq
import pydantic as pdt
from typing_extensions import override

import fraudstore.errors as errors


class BaseFormat(abc.ABC, pdt.BaseModel, frozen=True, strict=True, extra="forbid"):
    """Abstract base for file formats."""

    kind: str

    @property
    @abc.abstractmethod
    def suffixes(self) -> tuple[str, ...]:
        """File suffixes handled by this format."""
        ...

    @abc.abstractmethod
    def read(self, path: Path) -> pa.Table:
        """Read a file into a PyArrow table."""
        ...

    @abc.abstractmethod
    def write(self, path: Path, data: pa.Table) -> None:
        """Write a PyArrow table to a file, replacing it if present."""
        ...


class CsvFormat(BaseFormat):
    """Comma-separated text with a header row.

    Column types are inferred on read; timestamps written as
    ``YYYY-MM-DD HH:MM:SS`` are read back as timestamps.
    """

    kind: Literal["csv"] = "csv"

    delimiter: str = ","

    @property
    @override
    def suffixes(self) -> tuple[str, ...]:
        return (".csv",)

    @override
    def read(self, path: Path) -> pa.Table:
        return pacsv.read_csv(
            str(path),
            parse_options=pacsv.ParseOptions(delimiter=self.delimiter),
        )

    @override
    def write(self, path: Path, data: pa.Table) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        pacsv.write_csv(
            data,
            str(path),
            write_options=pacsv.WriteOptions(delimiter=self.delimiter),
        )


class ParquetFormat(BaseFormat):
    """Parquet format for columnar storage."""

    kind: Literal["parquet"] = "parquet"

    compression: Literal["snappy", "gzip", "zstd", "none"] = "snappy"

    @property
    @override
    def suffixes(self) -> tuple[str, ...]:
        return (".parquet", ".pq")

    @override
    def read(self, path: Path) -> pa.Table:
        """Read a Parquet file or directory of Parquet files."""
        return pq.read_table(str(path))

    @override
    def write(self, path: Path, data: pa.Table) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        pq.write_table(
            data,
            str(path),
            compression=self.compression if self.compression != "none" else None,
        )


FormatKind = CsvFormat | ParquetFormat

_FORMATS: tuple[BaseFormat, ...] = (CsvFormat(), ParquetFormat())


def format_for_path(path: Path | str) -> FormatKind:
    """Pick the format handling a file's suffix.

    Raises:
        UnsupportedFormatError: If no format handles the suffix.
    """
    suffix = Path(path).suffix.lower()
    for fmt in _FORMATS:
        if suffix in fmt.suffixes:
            return fmt
    raise errors.UnsupportedFormatError(
        str(path), [s for fmt in _FORMATS for s in fmt.suffixes]
    )
