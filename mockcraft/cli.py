"""Command-line interface for MockCraft."""

import click
import logging
import sys
import json
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Tuple

from pydantic import ValidationError

from mockcraft.backends import FileBackend, create_backend
from mockcraft.core.context import RunContext
from mockcraft.core.dependency_resolver import DependencyResolver
from mockcraft.core.errors import ConfigurationError, MockCraftError
from mockcraft.core.models import SeedConfig
from mockcraft.core.output import OUTPUT_FORMATS, json_default
from mockcraft.core.schema_loader import load_schema
from mockcraft.core.seeder import Seeder
from mockcraft.core.validator import SchemaValidator
from mockcraft.generators.engine import GeneratorEngine


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DATABASE_URL_ENV = 'MOCKCRAFT_DATABASE_URL'


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
def cli(verbose: bool, quiet: bool):
    """MockCraft - Seed databases with realistic, referentially consistent mock data."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif quiet:
        logging.getLogger().setLevel(logging.ERROR)


def _format_output(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, default=json_default)


def _parse_params(pairs: Tuple[str, ...]) -> Dict[str, Any]:
    """Turn ``key=value`` pairs into a parameter bag; values are read as YAML scalars."""
    params: Dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition('=')
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got '{pair}'", param_hint='--param')
        try:
            params[key] = yaml.safe_load(raw) if raw else ''
        except yaml.YAMLError:
            params[key] = raw
    return params


@cli.command()
@click.argument('industry')
@click.argument('name')
@click.option('--param', '-p', 'params', multiple=True, help='Generator parameter as key=value (repeatable)')
@click.option('--count', '-n', default=1, type=click.IntRange(min=1), help='Number of values to generate')
@click.option('--seed', type=int, default=0, help='Random seed')
def generate(industry: str, name: str, params: Tuple[str, ...], count: int, seed: int):
    """Generate values with a single generator."""
    try:
        engine = GeneratorEngine(seed=seed)
        parsed = _parse_params(params)
        for _ in range(count):
            click.echo(_format_output(engine.generate(industry, name, parsed)))
    except MockCraftError as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)


@cli.command(name='list')
@click.argument('industry', required=False)
def list_generators(industry: Optional[str]):
    """List industries, or the generators of one industry."""
    engine = GeneratorEngine()
    try:
        if industry is None:
            click.echo("📚 Industries:")
            for name in engine.list_industries():
                click.echo(f"  • {name} ({len(engine.list_generators(name))} generators)")
            return
        click.echo(f"📚 Generators in {industry}:")
        for name in engine.list_generators(industry):
            info = engine.info(industry, name)
            description = f" - {info.description}" if info.description else ""
            click.echo(f"  • {name}{description}")
    except MockCraftError as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument('industry')
@click.argument('name')
@click.option('--json', 'as_json', is_flag=True, help='Print the metadata as JSON')
def info(industry: str, name: str, as_json: bool):
    """Show a generator's description, example and parameters."""
    try:
        details = GeneratorEngine().info(industry, name)
    except MockCraftError as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(details.to_dict(), indent=2, default=json_default))
        return

    click.echo(f"🔧 {details.industry}.{details.name}")
    if details.description:
        click.echo(f"  {details.description}")
    if details.example:
        click.echo(f"  Example: {details.example}")
    if details.parameters:
        click.echo("  Parameters:")
        for param in details.parameters:
            extras = []
            if param.default is not None:
                extras.append(f"default {param.default}")
            if param.options:
                extras.append(f"one of {', '.join(str(o) for o in param.options)}")
            suffix = f" ({'; '.join(extras)})" if extras else ""
            click.echo(f"    • {param.name} [{param.type}]{suffix} {param.description}".rstrip())


@cli.command()
@click.argument('schema_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--min-relationships', type=click.IntRange(min=0),
              help='Fail when fewer valid relationships are declared')
@click.option('--strict-cycles', is_flag=True, help='Treat multi-table reference cycles as errors')
def validate(schema_path: str, min_relationships: Optional[int], strict_cycles: bool):
    """Validate a schema file and show the insertion order."""
    try:
        schema = load_schema(schema_path)
        SchemaValidator(GeneratorEngine(), min_relationships).validate(schema)
        plan = DependencyResolver(schema).create_insertion_plan(strict_cycles=strict_cycles)
    except MockCraftError as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)

    click.echo("✅ Schema is valid")
    click.echo(f"  Tables: {len(schema.tables)}")
    click.echo(f"  Relationships: {len(schema.relations)}")
    click.echo(f"  Insertion order: {' -> '.join(plan.insertion_order)}")
    if plan.circular_tables:
        click.echo(f"  ⚠️  Circular tables (inserted last): {', '.join(plan.circular_tables)}")
    if plan.self_referencing_tables:
        click.echo(f"  Self-referencing tables: {', '.join(plan.self_referencing_tables)}")


def load_config_file(config_path: str) -> Dict[str, Any]:
    """Load configuration from JSON or YAML file."""
    config_file = Path(config_path)

    if not config_file.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_file, 'r') as f:
            if config_file.suffix.lower() == '.json':
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read configuration file {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {config_path} must contain a mapping")
    return data


def build_seed_config(settings_path: Optional[str], overrides: Dict[str, Any]) -> SeedConfig:
    """Settings file values, then command-line overrides, validated as a :class:`SeedConfig`."""
    data = load_config_file(settings_path) if settings_path else {}
    data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return SeedConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid seed settings: {e}") from e


def _print_summary(result) -> None:
    click.echo("\n📊 Summary:")
    for table in result.insertion_order:
        deferred = " (deferred)" if table in result.deferred_tables else ""
        click.echo(f"  • {table}: {result.rows_inserted.get(table, 0):,} rows{deferred}")
    click.echo(f"  Total rows: {result.total_rows:,}")
    click.echo(f"  Time: {result.total_time_seconds:.2f}s")
    for report in result.integrity:
        if not report.ok:
            click.echo(f"  ⚠️  {report.relationship.describe()}: {report.violations} rows "
                       f"reference missing keys, e.g. {report.offenders}")


@cli.command()
@click.option('--config', '-c', 'schema_path', required=True,
              type=click.Path(exists=True, dir_okay=False), help='Schema YAML file')
@click.option('--db', 'database_url', envvar=DATABASE_URL_ENV,
              help=f'Database URL (default: ${DATABASE_URL_ENV})')
@click.option('--output', '-o', 'output_format', type=click.Choice(OUTPUT_FORMATS),
              help='Write files instead of using a database')
@click.option('--dir', 'output_dir', default='output', type=click.Path(file_okay=False),
              help='Directory for --output files')
@click.option('--settings', type=click.Path(exists=True, dir_okay=False),
              help='YAML or JSON file with seed settings')
@click.option('--count', type=click.IntRange(min=0), help='Rows per table, overriding the schema')
@click.option('--seed', type=int, help='Random seed for reproducible data')
@click.option('--now', type=click.DateTime(), help='Reference time for temporal generators')
@click.option('--batch-size', type=click.IntRange(min=1), help='Rows per insert batch')
@click.option('--workers', type=click.IntRange(min=1), help='Threads used to generate large tables')
@click.option('--backup', 'backup_path', type=click.Path(dir_okay=False), help='Back up the database here first')
@click.option('--min-relationships', type=click.IntRange(min=0),
              help='Fail when fewer valid relationships are declared')
@click.option('--timeout', type=click.FloatRange(min=0), help='Abort the run after this many seconds')
@click.option('--dry-run', is_flag=True, help='Generate rows without writing anything')
@click.option('--no-drop', is_flag=True, help='Keep existing tables instead of dropping them')
@click.option('--no-verify', is_flag=True, help='Skip the referential integrity check')
@click.option('--strict-cycles', is_flag=True, help='Fail on multi-table reference cycles')
@click.option('--no-progress', is_flag=True, help='Hide progress bars')
def seed(schema_path: str, database_url: Optional[str], output_format: Optional[str], output_dir: str,
         settings: Optional[str], count: Optional[int], seed: Optional[int], now, batch_size: Optional[int],
         workers: Optional[int], backup_path: Optional[str], min_relationships: Optional[int],
         timeout: Optional[float], dry_run: bool, no_drop: bool, no_verify: bool, strict_cycles: bool,
         no_progress: bool):
    """Seed a database (or files) from a schema."""
    overrides = {
        'count_override': count,
        'seed': seed,
        'batch_size': batch_size,
        'max_workers': workers,
        'backup_path': backup_path,
        'min_relationships': min_relationships,
        'timeout_seconds': timeout,
    }
    if dry_run:
        overrides['dry_run'] = True
    if no_drop:
        overrides['drop_existing'] = False
    if no_verify:
        overrides['verify'] = False
    if strict_cycles:
        overrides['strict_cycles'] = True
    if no_progress:
        overrides['show_progress'] = False

    if not dry_run and not database_url and not output_format:
        raise click.UsageError(f"Provide --db, --output or --dry-run (or set {DATABASE_URL_ENV})")

    backend = None
    try:
        config = build_seed_config(settings, overrides)
        schema = load_schema(schema_path)
        engine = GeneratorEngine(seed=config.seed, now=now)
        ctx = RunContext(timeout=config.timeout_seconds)

        if not config.dry_run:
            if output_format:
                backend = FileBackend(output_dir, output_format)
            else:
                backend = create_backend(database_url)
            click.echo(f"🔌 Connecting to {backend.driver_name()} backend...")
            backend.connect(ctx)

        click.echo(f"🌱 Seeding from {schema_path}...")
        result = Seeder(backend, engine, config).seed(schema, ctx)

        if backend is not None:
            backend.close()
            backend = None

        _print_summary(result)
        if config.dry_run:
            click.echo("\n🔍 Dry run, first row of each table:")
            for table, rows in result.data.items():
                preview = _format_output(rows[0]) if rows else "(no rows)"
                click.echo(f"  • {table}: {preview}")

        if not result.ok:
            click.echo("\n❌ Referential integrity check failed", err=True)
            sys.exit(1)
        click.echo("\n🎉 Seeding completed successfully!")

    except KeyboardInterrupt:
        click.echo("\n\n⏹️  Operation cancelled by user")
        sys.exit(1)
    except MockCraftError as e:
        click.echo(f"\n❌ Error: {e}", err=True)
        sys.exit(1)
    finally:
        if backend is not None:
            backend.close()


@cli.command()
@click.option('--db', 'database_url', envvar=DATABASE_URL_ENV, required=True, help='Database URL')
@click.argument('path', type=click.Path(dir_okay=False))
def backup(database_url: str, path: str):
    """Back up a database to PATH."""
    _run_backup_command(database_url, path, restore=False)


@cli.command()
@click.option('--db', 'database_url', envvar=DATABASE_URL_ENV, required=True, help='Database URL')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
def restore(database_url: str, path: str):
    """Restore a database from a backup at PATH."""
    _run_backup_command(database_url, path, restore=True)


def _run_backup_command(database_url: str, path: str, restore: bool) -> None:
    try:
        ctx = RunContext()
        with create_backend(database_url) as backend:
            if restore:
                backend.restore(ctx, path)
                click.echo(f"✅ Restored from {path}")
            else:
                backend.backup(ctx, path)
                click.echo(f"✅ Backup written to {path}")
    except MockCraftError as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == '__main__':
    main()
