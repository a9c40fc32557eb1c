"""CLI entry point for the background worker."""

from __future__ import annotations

import click

from rms.application.periodic_checks import RunPeriodicChecksHandler
from rms.infrastructure.bootstrap import runner
from rms.infrastructure.settings import get_settings
from rms.infrastructure.worker import PeriodicWorker


@click.group()
def worker() -> None:
    """Run background checks."""


@worker.command("run")
@click.option("--once", is_flag=True, default=False, help="Run a single cycle and exit.")
def worker_run(once: bool) -> None:
    """Reconcile requests, auto-accept stale ones and trigger due schedules."""
    settings = get_settings()
    handler = RunPeriodicChecksHandler(runner(), settings.acceptance_window_days)
    periodic = PeriodicWorker(handler, settings.reconciliation_interval_seconds)

    if once:
        summary = periodic.run_once()
        click.echo(
            f"Reconciled {len(summary.reconciled)}, auto-accepted {len(summary.auto_accepted)}, "
            f"triggered {len(summary.triggered)}, failures {len(summary.failures)}"
        )
        for failure in summary.failures:
            click.echo(f"  {failure}")
        return

    try:
        periodic.run_forever()
    except KeyboardInterrupt:
        periodic.stop()
