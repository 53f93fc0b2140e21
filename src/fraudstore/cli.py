"""fraudstore CLI.

Manage a fraud detection store and query its reporting views.
"""

from __future__ import annotations

import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

if TYPE_CHECKING:
    import fraudstore.views as views_mod

import cyclopts
from loguru import logger

import fraudstore.backends as backends
import fraudstore.errors as errors
import fraudstore.output as output
import fraudstore.settings as settings

# Version is defined here and in pyproject.toml
__version__ = "0.1.0"

console = output.console

app = cyclopts.App(
    name="fraudstore",
    help="Fraud detection store: transactions, predictions and reporting views.",
    version=__version__,
)


def _handle_error(e: errors.FraudStoreError) -> None:
    """Display a structured error message."""
    output.render_error(e)


def _configure_logging() -> None:
    """Send loguru output to stderr at FRAUDSTORE_LOG_LEVEL."""
    runtime = settings.RuntimeSettings()
    logger.remove()
    logger.add(sys.stderr, level=runtime.log_level.upper())


def _load_settings(env_name: str | None) -> settings.FraudStoreSettings:
    _configure_logging()
    return settings.load_settings(env=env_name)


def _get_store(fraud_settings: settings.FraudStoreSettings) -> backends.StoreKind:
    """Get the store for the current environment."""
    return fraud_settings.active_environment.store


def _get_engine(fraud_settings: settings.FraudStoreSettings) -> views_mod.ReportEngine:
    """Get a report engine over the current environment's store."""
    import fraudstore.views as views

    env_settings = fraud_settings.active_environment
    return views.ReportEngine(env_settings.store, env_settings.reporting)


EnvOption = Annotated[
    str | None,
    cyclopts.Parameter(name="--env", help="Environment to use"),
]


@app.command
def init(
    reset: Annotated[
        bool,
        cyclopts.Parameter(name="--reset", help="Drop all tables and views first"),
    ] = False,
    install_views: Annotated[
        bool,
        cyclopts.Parameter(
            name="--install-views", help="Also create the vw_* reporting views"
        ),
    ] = False,
    yes: Annotated[
        bool,
        cyclopts.Parameter(name="--yes", help="Skip confirmation prompt"),
    ] = False,
    env_name: EnvOption = None,
):
    """Create the store schema (tables, indexes and metadata).

    Examples:
        fraudstore init
        fraudstore init --reset --yes --install-views
    """
    try:
        fraud_settings = _load_settings(env_name)
        store = _get_store(fraud_settings)

        if reset:
            console.print(
                f"[bold]Resetting {store.path}[/bold] [dim]({fraud_settings.active_env})[/dim]"
            )
            if not yes and not output.prompt_purge():
                output.render_cancelled()
                return
            store.reset()
            console.print("[yellow]~[/yellow] Dropped all tables and views")
        else:
            store.initialize()

        console.print(f"[green]✓[/green] Initialized store at {store.path}")

        if install_views:
            installed = _get_engine(fraud_settings).install_views()
            console.print(f"[green]✓[/green] Installed {len(installed)} view(s)")

    except errors.FraudStoreError as e:
        _handle_error(e)
        raise SystemExit(1)


@app.command
def env(
    name: Annotated[
        str | None,
        cyclopts.Parameter(help="Environment name to show details for"),
    ] = None,
):
    """Show current environment or details of a specific environment."""
    try:
        fraud_settings = _load_settings(None)

        if name:
            if name not in fraud_settings.environments:
                raise errors.EnvironmentNotFoundError(
                    env=name,
                    available=list(fraud_settings.environments.keys()),
                )
            env_settings = fraud_settings.environments[name]
            console.print(f"[bold]Environment:[/bold] {name}")
            console.print(f"  Store: {env_settings.store.kind} ({env_settings.store.path})")
            console.print(f"  Reporting model: {env_settings.reporting.model_name}")
            console.print(
                f"  High-risk threshold: {env_settings.reporting.high_risk_threshold}"
            )
        else:
            console.print(
                f"[bold]Current environment:[/bold] {fraud_settings.active_env}"
            )
            console.print(f"[dim]Default:[/dim] {fraud_settings.default_env}")
            console.print(
                f"[dim]Available:[/dim] {', '.join(fraud_settings.environments.keys())}"
            )

    except errors.FraudStoreError as e:
        _handle_error(e)
        raise SystemExit(1)


@app.command(name="env-list")
def env_list():
    """List all available environments."""
    try:
        fraud_settings = _load_settings(None)
        console.print("[bold]Environments:[/bold]")
        for name, env_settings in fraud_settings.environments.items():
            marker = (
                " [green](default)[/green]"
                if name == fraud_settings.default_env
                else ""
            )
            console.print(f"  {name}{marker}")
            console.print(f"    store: {env_settings.store.path}")
    except errors.FraudStoreError as e:
        _handle_error(e)
        raise SystemExit(1)


@app.command
def status(env_name: EnvOption = None):
    """Show row counts of the stored tables."""
    try:
        fraud_settings = _load_settings(env_name)
        store = _get_store(fraud_settings)

        if not Path(store.path).exists():
            console.print(f"[yellow]Store not initialized:[/yellow] {store.path}")
            console.print("[dim]Run 'fraudstore init' to create it.[/dim]")
            raise SystemExit(1)

        console.print(
            f"[bold]{fraud_settings.name}[/bold] [dim]({fraud_settings.active_env})[/dim]"
        )
        console.print(f"  Store: {store.path}")
        console.print(f"  Schema version: {store.get_meta('schema_version')}")
        console.print()
        output.render_counts(store.counts())

    except errors.FraudStoreError as e:
        _handle_error(e)
        raise SystemExit(1)


@app.command
def report(
    view: Annotated[
        str,
        cyclopts.Parameter(help="Reporting view to run"),
    ],
    limit: Annotated[
        int | None,
        cyclopts.Parameter(name="--limit", help="Maximum number of rows"),
    ] = None,
    output_path: Annotated[
        Path | None,
        cyclopts.Parameter(
            name="--output", help="Write rows to a .csv or .parquet file instead"
        ),
    ] = None,
    env_name: EnvOption = None,
):
    """Run a reporting view and display or export its rows.

    Examples:
        fraudstore report high_risk_transactions --limit 20
        fraudstore report daily_fraud_summary --output daily.parquet
    """
    try:
        import fraudstore.formats as formats

        fraud_settings = _load_settings(env_name)
        engine = _get_engine(fraud_settings)

        # Resolve the format before running so a bad suffix fails fast
        fmt = formats.format_for_path(output_path) if output_path else None

        t0 = time.perf_counter()
        data = engine.run(view, limit=limit)
        logger.debug(f"Report: {(time.perf_counter() - t0) * 1000:.1f}ms")

        if fmt is not None and output_path is not None:
            fmt.write(output_path, data)
            console.print(
                f"[green]✓[/green] Wrote {data.num_rows} row(s) to {output_path}"
            )
        else:
            output.render_table(data, title=view)

    except errors.FraudStoreError as e:
        _handle_error(e)
        raise SystemExit(1)


@app.command
def compile(
    view: Annotated[
        str | None,
        cyclopts.Parameter(
            help="Specific view to compile (compiles all if not specified)"
        ),
    ] = None,
    env_name: EnvOption = None,
):
    """Generate SQL files to .fraudstore/compiled/ directory.

    Creates query.sql, ibis_expr.txt and lineage.json for each reporting
    view. Useful for debugging and auditing.
    """
    try:
        import fraudstore.compile_output as compile_output
        import fraudstore.views as views

        fraud_settings = _load_settings(env_name)
        console.print(f"[bold]Compiling for {fraud_settings.active_env}...[/bold]")
        console.print()

        names = [views.get_view(view).name] if view else list(views.VIEWS)
        output_dir = fraud_settings.project_root / ".fraudstore" / "compiled"
        engine = _get_engine(fraud_settings)

        for name in names:
            compiled = engine.compile(name)
            view_dir = compile_output.write_compile_output(
                compiled=compiled,
                output_dir=output_dir,
                env=fraud_settings.active_env,
                fraudstore_version=__version__,
                reporting_model=engine.reporting.model_name,
            )
            console.print(f"[green]✓[/green] {name}")
            console.print(f"  [dim]{view_dir}/query.sql[/dim]")
            console.print(f"  [dim]{view_dir}/lineage.json[/dim]")

        console.print()
        console.print(
            f"[bold green]Compiled {len(names)} view(s) to .fraudstore/compiled/[/bold green]"
        )

    except errors.FraudStoreError as e:
        _handle_error(e)
        raise SystemExit(1)


@app.command(name="install-views")
def install_views(env_name: EnvOption = None):
    """Create or replace the vw_* SQL views in the store."""
    try:
        fraud_settings = _load_settings(env_name)
        _get_store(fraud_settings).initialize()
        installed = _get_engine(fraud_settings).install_views()
        for name in installed:
            console.print(f"[green]+[/green] {name}")
        console.print()
        console.print(f"[bold green]Installed {len(installed)} view(s)[/bold green]")
    except errors.FraudStoreError as e:
        _handle_error(e)
        raise SystemExit(1)


@app.command
def load(
    table: Annotated[
        str,
        cyclopts.Parameter(
            help="Target table (customers, transactions, predictions, model_performance)"
        ),
    ],
    path: Annotated[
        Path,
        cyclopts.Parameter(help="CSV or Parquet file to load"),
    ],
    env_name: EnvOption = None,
):
    """Bulk-load rows from a file into a stored table.

    Every row is validated before anything is written.

    Examples:
        fraudstore load customers customers.csv
        fraudstore load transactions transactions.parquet
    """
    try:
        import fraudstore.formats as formats
        import fraudstore.loader as loader

        fraud_settings = _load_settings(env_name)
        store = _get_store(fraud_settings)
        store.initialize()

        fmt = formats.format_for_path(path)
        data = fmt.read(path)
        result = loader.load_table(store, table, data)
        output.render_load_result(result)

    except errors.FraudStoreError as e:
        _handle_error(e)
        raise SystemExit(1)


@app.command
def purge(
    customer_id: Annotated[
        int,
        cyclopts.Parameter(help="Customer to delete"),
    ],
    yes: Annotated[
        bool,
        cyclopts.Parameter(name="--yes", help="Skip confirmation prompt"),
    ] = False,
    env_name: EnvOption = None,
):
    """Delete a customer with all of its transactions and predictions."""
    try:
        fraud_settings = _load_settings(env_name)
        store = _get_store(fraud_settings)

        output.render_purge_preview(store.preview_purge(customer_id))
        if not yes and not output.prompt_purge():
            output.render_cancelled()
            return

        result = store.purge_customer(customer_id)
        output.render_purge_result(result)

    except errors.FraudStoreError as e:
        _handle_error(e)
        raise SystemExit(1)


@app.command(name="refresh-customers")
def refresh_customers(
    customer_id: Annotated[
        int | None,
        cyclopts.Parameter(help="Customer to refresh (all if not specified)"),
    ] = None,
    env_name: EnvOption = None,
):
    """Recompute customer transaction totals from the transaction log."""
    try:
        fraud_settings = _load_settings(env_name)
        updated = _get_store(fraud_settings).refresh_customer_aggregates(customer_id)
        console.print(f"[green]✓[/green] Refreshed {updated} customer(s)")
    except errors.FraudStoreError as e:
        _handle_error(e)
        raise SystemExit(1)
