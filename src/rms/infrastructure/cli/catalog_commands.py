"""CLI commands for reference data and the operating budget."""

from __future__ import annotations

from datetime import datetime

import click

from rms.application.manage_catalog import (
    AddAccessoryHandler,
    AddIssueHandler,
    AddScheduleHandler,
    AddTechnicianHandler,
    SetBudgetHandler,
)
from rms.domain.exceptions import DomainException
from rms.domain.model.catalog import DEFAULT_VISIT_MINUTES
from rms.domain.model.value_objects import Actor, Money
from rms.infrastructure.bootstrap import runner
from rms.infrastructure.cli.params import ID_LIST, MONEY


@click.group()
def catalog() -> None:
    """Manage technicians, accessories, issues and schedules."""


@catalog.command("technician")
@click.option("--id", "technician_id", required=True, type=int, help="User id of the technician.")
@click.option("--name", required=True, help="Display name.")
@click.option("--techniques", "technique_ids", type=ID_LIST, default="", help="Technique ids as '1,4'.")
@click.pass_obj
def catalog_technician(actor: Actor, technician_id: int, name: str, technique_ids: list[int]) -> None:
    """Register a technician or update their techniques."""
    handler = AddTechnicianHandler(runner())

    try:
        handler.handle(actor, technician_id, name, technique_ids)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Technician #{technician_id} saved.")


@catalog.command("accessory")
@click.option("--name", required=True, help="Accessory name.")
@click.option("--price", required=True, type=MONEY, help="Catalog unit price.")
@click.option("--description", default="", help="Free text.")
@click.pass_obj
def catalog_accessory(actor: Actor, name: str, price: Money, description: str) -> None:
    """Add an accessory to the catalog."""
    handler = AddAccessoryHandler(runner())

    try:
        accessory_id = handler.handle(actor, name, price, description)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Accessory #{accessory_id} '{name}' added at {price}")


@catalog.command("issue")
@click.option("--name", required=True, help="Issue name.")
@click.option("--technique", "technique_id", required=True, type=int, help="Required technique id.")
@click.option("--technicians", "required_technicians", type=int, default=1, show_default=True,
              help="Technicians needed per visit.")
@click.option("--minutes", "estimated_minutes", type=int, default=DEFAULT_VISIT_MINUTES,
              show_default=True, help="Estimated visit length.")
@click.option("--emergency", is_flag=True, default=False, help="Requests are emergencies.")
@click.pass_obj
def catalog_issue(
    actor: Actor,
    name: str,
    technique_id: int,
    required_technicians: int,
    estimated_minutes: int,
    emergency: bool,
) -> None:
    """Add an issue type."""
    handler = AddIssueHandler(runner())

    try:
        issue_id = handler.handle(
            actor, name, technique_id, required_technicians, estimated_minutes, emergency
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Issue #{issue_id} '{name}' added.")


@catalog.command("schedule")
@click.option("--area-object", "common_area_object_id", required=True, type=int,
              help="Common-area object id.")
@click.option("--description", required=True, help="Upkeep to perform.")
@click.option("--technique", "technique_id", required=True, type=int, help="Required technique id.")
@click.option("--every", "interval_days", required=True, type=int, help="Interval in days.")
@click.option("--next-due", required=True, type=click.DateTime(formats=["%Y-%m-%d"]),
              help="First due date (YYYY-MM-DD).")
@click.option("--technicians", "required_technicians", type=int, default=1, show_default=True,
              help="Technicians needed per visit.")
@click.option("--minutes", "estimated_minutes", type=int, default=DEFAULT_VISIT_MINUTES,
              show_default=True, help="Estimated visit length.")
@click.pass_obj
def catalog_schedule(
    actor: Actor,
    common_area_object_id: int,
    description: str,
    technique_id: int,
    interval_days: int,
    next_due: datetime,
    required_technicians: int,
    estimated_minutes: int,
) -> None:
    """Add a recurring maintenance schedule."""
    handler = AddScheduleHandler(runner())

    try:
        schedule_id = handler.handle(
            actor,
            common_area_object_id,
            description,
            technique_id,
            interval_days,
            next_due.date(),
            required_technicians,
            estimated_minutes,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Schedule #{schedule_id} added; first due {next_due.date().isoformat()}")


@catalog.command("budget")
@click.option("--amount", required=True, type=MONEY, help="New operating budget balance.")
@click.pass_obj
def catalog_budget(actor: Actor, amount: Money) -> None:
    """Set the operating budget balance."""
    handler = SetBudgetHandler(runner())

    try:
        handler.handle(actor, amount)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Operating budget set to {amount}")
