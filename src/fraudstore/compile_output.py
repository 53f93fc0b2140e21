"""Compile output generation for auditing the reporting views.

Writes structured output files for each compiled view:
- query.sql: The compiled SQL (Ibis -> SQLite dialect)
- ibis_expr.txt: Ibis expression tree for debugging
- lineage.json: Source tables, output columns and compile metadata
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import fraudstore.views as views


def write_compile_output(
    compiled: views.CompiledView,
    output_dir: Path,
    *,
    env: str,
    fraudstore_version: str,
    reporting_model: str | None = None,
) -> Path:
    """Write compile output files for a single view.

    Args:
        compiled: The CompiledView result from the report engine.
        output_dir: Base output directory (e.g. .fraudstore/compiled).
        env: Active environment name.
        fraudstore_version: Current fraudstore version string.
        reporting_model: Model name the view's predictions are filtered to.

    Returns:
        Path to the view output directory.
    """
    view_dir = output_dir / compiled.name
    view_dir.mkdir(parents=True, exist_ok=True)

    query_path = view_dir / "query.sql"
    query_path.write_text(
        f"-- Reporting view: {compiled.name}\n"
        f"-- Installed as: {views.VIEW_PREFIX}{compiled.name}\n"
        f"--\n"
        f"{compiled.sql}\n"
    )

    ibis_path = view_dir / "ibis_expr.txt"
    ibis_path.write_text(str(compiled.ibis_expr))

    lineage = {
        "view": compiled.name,
        "source_tables": compiled.source_tables,
        "columns": list(compiled.ibis_expr.columns),
        "reporting_model": reporting_model,
        "compiled_at": datetime.now(tz=timezone.utc).isoformat(),
        "fraudstore_version": fraudstore_version,
        "env": env,
    }
    lineage_path = view_dir / "lineage.json"
    lineage_path.write_text(json.dumps(lineage, indent=2))

    return view_dir
