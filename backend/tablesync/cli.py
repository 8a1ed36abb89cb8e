import logging
import sys

import click
import psycopg

from tablesync.config.config_loader import ConfigLoader, ConfigLoadError, SyncSettings
from tablesync.logging_config import setup_logging
from tablesync.services import postgres_service, run_history, sync_engine
from tablesync.services.errors import SyncError
from tablesync.services.sync_log import SyncLog

logger = logging.getLogger(__name__)


def _load_settings(config_path: str, debug) -> SyncSettings:
    try:
        settings = ConfigLoader(config_path).load()
    except ConfigLoadError as e:
        click.echo(str(e), err=True)
        sys.exit(2)

    if debug is not None:
        settings.debug = debug
    setup_logging(settings.logging or None, level=settings.log_level)
    return settings


@click.group()
def cli():
    """Incremental table sync between two Postgres databases"""
    pass


@cli.command()
@click.option('--config', '-c', 'config_path', required=True,
              type=click.Path(exists=True, dir_okay=False),
              help='Path to the job-list file (YAML or JSON)')
@click.option('--debug/--no-debug', default=None,
              help='Verbose per-column output (overrides the config file)')
@click.option('--history/--no-history', default=True,
              help='Record each job result in the run history database')
def run(config_path, debug, history):
    """Run every enabled job in the job list, in order"""
    settings = _load_settings(config_path, debug)
    enabled = [j for j in settings.jobs if not j.disabled]
    logger.info(f"Loaded {len(settings.jobs)} jobs ({len(enabled)} enabled) from {config_path}")

    try:
        results = sync_engine.run_all(
            settings.jobs,
            debug=settings.debug,
            on_result=run_history.record_run if history else None,
        )
    except Exception as e:
        logger.error(f"Sync run aborted: {str(e)}")
        sys.exit(1)

    total = sum(r.rows_processed for r in results)
    click.echo(f"Completed {len(results)} jobs, {total} rows processed")


@cli.command()
@click.option('--config', '-c', 'config_path', required=True,
              type=click.Path(exists=True, dir_okay=False),
              help='Path to the job-list file (YAML or JSON)')
@click.option('--label', '-l', required=True, help='Job label to probe')
def probe(config_path, label):
    """Print the source and destination max ids for one job"""
    settings = _load_settings(config_path, None)
    try:
        job = settings.find_job(label)
    except KeyError:
        click.echo(f"No job labelled '{label}'", err=True)
        sys.exit(2)

    log = SyncLog(debug=settings.debug)
    try:
        source_max = postgres_service.probe_max(job.source, job.source_max_query, job.label, log)
        dest_max = postgres_service.probe_max(job.destination, job.dest_max_query, job.label, log)
    except (SyncError, psycopg.Error) as e:
        logger.error(f"Probe failed for {label}: {str(e)}")
        sys.exit(1)

    click.echo(f"{label}: source max {source_max}, destination max {dest_max}")


@cli.command()
@click.option('--label', '-l', default=None, help='Only show runs of this job')
@click.option('--limit', '-n', default=20, show_default=True, type=click.IntRange(min=1))
def history(label, limit):
    """List recent job runs"""
    for r in run_history.list_runs(label=label, limit=limit):
        line = (f"{r.completed_at.isoformat()}  {r.label:<24} {r.status:<9} "
                f"rows={r.rows_processed} source_max={r.source_max} dest_max={r.dest_max}")
        if r.last_error:
            line += f"  error={r.last_error}"
        click.echo(line)


if __name__ == '__main__':
    cli()
