"""Tests for file format classes."""

from __future__ import annotations

from datetime import datetime

import pyarrow as pa
import pydantic as pdt
import pytest

import fraudstore.errors as errors
import fraudstore.formats as formats


@pytest.fixture
def sample_data() -> pa.Table:
    return pa.table(
        {
            "transaction_id": ["T1", "T2"],
            "transaction_amount": [100.0, 500.0],
            "transaction_date": [datetime(2024, 1, 15, 10, 30), datetime(2024, 1, 16)],
        }
    )


class TestFormatForPath:
    """Tests for suffix-based format selection."""

    def test_csv(self) -> None:
        assert isinstance(formats.format_for_path("rows.csv"), formats.CsvFormat)

    @pytest.mark.parametrize("name", ["rows.parquet", "rows.pq", "ROWS.PARQUET"])
    def test_parquet(self, name) -> None:
        assert isinstance(formats.format_for_path(name), formats.ParquetFormat)

    def test_unsupported_suffix(self) -> None:
        with pytest.raises(errors.UnsupportedFormatError, match=".csv"):
            formats.format_for_path("rows.xlsx")


class TestCsvFormat:
    """Tests for CsvFormat."""

    def test_write_then_read(self, tmp_path, sample_data) -> None:
        path = tmp_path / "out" / "rows.csv"
        fmt = formats.CsvFormat()

        fmt.write(path, sample_data)
        result = fmt.read(path)

        assert result.column_names == sample_data.column_names
        assert result.column("transaction_id").to_pylist() == ["T1", "T2"]
        assert result.column("transaction_date").to_pylist()[0] == datetime(
            2024, 1, 15, 10, 30
        )

    def test_custom_delimiter(self, tmp_path) -> None:
        path = tmp_path / "rows.csv"
        path.write_text("customer_id;risk_score\n1;0.5\n")

        result = formats.CsvFormat(delimiter=";").read(path)

        assert result.to_pylist() == [{"customer_id": 1, "risk_score": 0.5}]


class TestParquetFormat:
    """Tests for ParquetFormat."""

    def test_write_then_read(self, tmp_path, sample_data) -> None:
        path = tmp_path / "rows.parquet"
        fmt = formats.ParquetFormat()

        fmt.write(path, sample_data)

        assert fmt.read(path).equals(sample_data)

    def test_uncompressed(self, tmp_path, sample_data) -> None:
        path = tmp_path / "rows.parquet"
        fmt = formats.ParquetFormat(compression="none")

        fmt.write(path, sample_data)

        assert fmt.read(path).num_rows == 2

    def test_invalid_compression_rejected(self) -> None:
        with pytest.raises(pdt.ValidationError):
            formats.ParquetFormat(compression="lz77")
