"""Command line interface for system object discovery."""

from __future__ import annotations

import sqlite3
import time
from typing import List, Optional, Tuple

import click
import pyarrow as pa

from ..catalog import Catalog, CatalogContainer, CatalogObject
from ..config import Config, DataSourceConfig, ConnectionConfiguration, load_config
from ..datasources import create_datasource
from ..errors import CatalogProbeError
from ..utils.logging import setup_logging


class TablePrinter:
    """Formats Arrow tables as bordered text tables."""

    def __init__(self, emit):
        self.emit = emit

    def display(self, table: pa.Table, summary: Optional[str] = None) -> None:
        headers = list(table.schema.names)
        rows = table.to_pylist()
        values = [[self._stringify_cell(row[name]) for name in headers] for row in rows]
        for line in self._format_table(headers, values):
            self.emit(line)
        if summary:
            self.emit(summary)

    def _format_table(self, headers: List[str], rows: List[List[str]]) -> List[str]:
        widths = [len(header) for header in headers]
        for row in rows:
            for index, text in enumerate(row):
                widths[index] = max(widths[index], len(text))
        border = "+" + "+".join("-" * (width + 2) for width in widths) + "+"
        lines = [border, self._format_row(headers, widths), border]
        for row in rows:
            lines.append(self._format_row(row, widths))
        lines.append(border)
        return lines

    def _format_row(self, values: List[str], widths: List[int]) -> str:
        cells = [f" {value.ljust(width)} " for value, width in zip(values, widths)]
        return "|" + "|".join(cells) + "|"

    def _stringify_cell(self, value: object) -> str:
        if value is None:
            return "NULL"
        return str(value)


class SystemCatalogPrinter:
    """Prints discovered system objects in a readable format."""

    def __init__(self, emit):
        self.emit = emit
        self.tables = TablePrinter(emit)

    def display_container(self, container: CatalogContainer, elapsed_ms: float) -> None:
        header = f"\nData Source: {container.get_name()}"
        self.emit(header)
        self.emit("-" * len(header))
        if not len(container):
            self.emit("No system objects found.")
            return
        for obj in container:
            self.emit(f"  {obj.get_name()} ({len(obj.get_attributes())} columns)")
        self.emit(f"{len(container)} system objects in {elapsed_ms:.2f} ms")

    def display_object(self, obj: CatalogObject) -> None:
        self.emit(f"\nSystem object: {obj.fully_qualified_name()}")
        self.tables.display(attributes_table(obj), f"{len(obj.get_attributes())} columns")
        pseudo = obj.get_all_pseudo_attributes()
        if not pseudo:
            self.emit("Pseudo columns: none")
            return
        names = ", ".join(f"{attr.name} {attr.type_name}" for attr in pseudo)
        self.emit(f"Pseudo columns: {names}")


def attributes_table(obj: CatalogObject) -> pa.Table:
    """Attributes of an object as an Arrow table, one row per column."""
    attributes = obj.get_attributes()
    return pa.table(
        {
            "#": pa.array([attr.ordinal_position for attr in attributes], type=pa.int32()),
            "name": pa.array([attr.name for attr in attributes], type=pa.string()),
            "type": pa.array([attr.full_type_name or attr.type_name for attr in attributes], type=pa.string()),
            "kind": pa.array([attr.data_kind.value for attr in attributes], type=pa.string()),
            "nullable": pa.array([attr.nullable for attr in attributes], type=pa.bool_()),
            "precision": pa.array([attr.precision for attr in attributes], type=pa.int64()),
            "scale": pa.array([attr.scale for attr in attributes], type=pa.int64()),
        }
    )


def _load_config_bundle(config_path: Optional[str]) -> Tuple[Config, Optional[str]]:
    if config_path:
        config = load_config(config_path)
        return config, None
    config = _build_default_config()
    note = "Using in-memory SQLite data source with demo tables."
    return config, note


def _build_default_config() -> Config:
    config = Config()
    ds_config = DataSourceConfig(
        name="sqlite_mem",
        type="sqlite",
        connection=ConnectionConfiguration(database=":memory:"),
    )
    config.datasources[ds_config.name] = ds_config
    return config


def _build_catalog(config: Config, datasource_name: Optional[str], seed_demo: bool) -> Catalog:
    if datasource_name and datasource_name not in config.datasources:
        raise click.BadParameter(f"Unknown data source: {datasource_name}", param_hint="-d/--datasource")
    catalog = Catalog(config.probe)
    for ds_config in config.datasources.values():
        if datasource_name and ds_config.name != datasource_name:
            continue
        datasource = create_datasource(ds_config)
        datasource.connect()
        if seed_demo:
            _seed_demo_data(datasource.connection)
        catalog.register_datasource(datasource)
    return catalog


def _seed_demo_data(connection: sqlite3.Connection) -> None:
    # AUTOINCREMENT creates sqlite_sequence; ANALYZE creates sqlite_stat1
    connection.executescript(
        """
        CREATE TABLE demo_users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            age INTEGER,
            city VARCHAR(40)
        );
        CREATE INDEX demo_users_city ON demo_users (city);
        INSERT INTO demo_users (name, age, city) VALUES
            ('Alice', 30, 'New York'),
            ('Bob', 34, 'Boston'),
            ('Carlos', 28, 'Austin');
        ANALYZE;
        """
    )


def _prepare(ctx: click.Context, config_path: Optional[str], datasource_name: Optional[str]) -> Catalog:
    config, note = _load_config_bundle(config_path)
    log_level = ctx.obj.get("log_level") or config.logging.level
    setup_logging(log_level, config.logging.structured, config.logging.log_file)
    if note:
        click.echo(note)
    try:
        return _build_catalog(config, datasource_name, note is not None)
    except CatalogProbeError as e:
        raise click.ClickException(str(e)) from e


config_option = click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, readable=True),
    help="Path to YAML config file. Defaults to an in-memory SQLite demo.",
)
datasource_option = click.option(
    "-d", "--datasource", "datasource_name", default=None, help="Only use this data source."
)


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging level; overrides the config file.",
)
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str]) -> None:
    """Discover the system catalog objects of live database connections."""
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level


@cli.command()
@config_option
@datasource_option
@click.option("--parallel/--sequential", default=None, help="Probe candidates concurrently.")
@click.option("--workers", type=click.IntRange(min=1), default=None, help="Parallel probe workers.")
@click.option("--timeout", type=click.FloatRange(min=0), default=None, help="Per-probe timeout in seconds for parallel discovery.")
@click.pass_context
def discover(
    ctx: click.Context,
    config_path: Optional[str],
    datasource_name: Optional[str],
    parallel: Optional[bool],
    workers: Optional[int],
    timeout: Optional[float],
) -> None:
    """List the system objects present on each data source."""
    catalog = _prepare(ctx, config_path, datasource_name)
    if parallel is not None:
        catalog.probe_config.parallel = parallel
    if workers is not None:
        catalog.probe_config.max_workers = workers
    if timeout is not None:
        catalog.probe_config.probe_timeout_s = timeout

    printer = SystemCatalogPrinter(click.echo)
    for name in catalog.datasources:
        start = time.perf_counter()
        try:
            container = catalog.get_system_catalog(name)
        except CatalogProbeError as e:
            raise click.ClickException(str(e)) from e
        elapsed_ms = (time.perf_counter() - start) * 1000
        printer.display_container(container, elapsed_ms)


@cli.command()
@config_option
@datasource_option
@click.argument("object_name")
@click.pass_context
def describe(
    ctx: click.Context,
    config_path: Optional[str],
    datasource_name: Optional[str],
    object_name: str,
) -> None:
    """Show the columns and pseudo columns of one system object."""
    catalog = _prepare(ctx, config_path, datasource_name)
    printer = SystemCatalogPrinter(click.echo)
    for name in catalog.datasources:
        try:
            obj = catalog.get_system_catalog(name).get_child(object_name)
            if obj is not None:
                printer.display_object(obj)
                return
        except CatalogProbeError as e:
            raise click.ClickException(str(e)) from e
    raise click.ClickException(f"System object '{object_name}' was not found")


if __name__ == "__main__":
    cli()
