"""Tests for compile output generation."""

import json

import pytest

import fraudstore.compile_output as compile_output
import fraudstore.views as views


@pytest.fixture
def compiled_view(store):
    """Compile a view using the real report engine."""
    return views.ReportEngine(store).compile("customer_risk_profile")


class TestWriteCompileOutput:
    """Tests for write_compile_output()."""

    def test_writes_all_files(self, tmp_path, compiled_view) -> None:
        view_dir = compile_output.write_compile_output(
            compiled_view,
            tmp_path / "compiled",
            env="dev",
            fraudstore_version="0.1.0",
        )

        assert view_dir == tmp_path / "compiled" / "customer_risk_profile"
        assert (view_dir / "query.sql").exists()
        assert (view_dir / "ibis_expr.txt").exists()
        assert (view_dir / "lineage.json").exists()

    def test_query_sql_has_header(self, tmp_path, compiled_view) -> None:
        view_dir = compile_output.write_compile_output(
            compiled_view, tmp_path, env="dev", fraudstore_version="0.1.0"
        )

        content = (view_dir / "query.sql").read_text()
        assert content.startswith("-- Reporting view: customer_risk_profile\n")
        assert "-- Installed as: vw_customer_risk_profile" in content
        assert compiled_view.sql in content

    def test_lineage(self, tmp_path, compiled_view) -> None:
        view_dir = compile_output.write_compile_output(
            compiled_view,
            tmp_path,
            env="prd",
            fraudstore_version="0.1.0",
            reporting_model="Random Forest",
        )

        lineage = json.loads((view_dir / "lineage.json").read_text())
        assert lineage["view"] == "customer_risk_profile"
        assert lineage["source_tables"] == ["customers", "transactions", "predictions"]
        assert lineage["columns"][0] == "customer_id"
        assert "customer_fraud_rate" in lineage["columns"]
        assert lineage["reporting_model"] == "Random Forest"
        assert lineage["env"] == "prd"
        assert lineage["fraudstore_version"] == "0.1.0"
        assert "compiled_at" in lineage
