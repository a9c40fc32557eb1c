"""CLI commands for appointments and technician work orders."""

from __future__ import annotations

from datetime import datetime

import click

from rms.application.assign_technicians import AssignTechniciansHandler
from rms.application.progress_appointment import (
    CancelAppointmentHandler,
    CompleteAppointmentHandler,
    ConfirmAppointmentHandler,
    StartRepairHandler,
    StartVisitHandler,
)
from rms.application.progress_work_order import FinishWorkHandler, StartWorkHandler
from rms.application.schedule_appointment import ScheduleAppointmentHandler
from rms.application.show_appointment import ShowAppointmentHandler
from rms.application.suggest_technicians import SuggestTechniciansHandler
from rms.domain.exceptions import DomainException
from rms.domain.model.value_objects import Actor
from rms.infrastructure.bootstrap import runner, scheduling_policy, shift_roster
from rms.infrastructure.cli.params import ID_LIST, UTC_DATETIME
from rms.infrastructure.settings import get_settings

_STEPS = {
    "confirm": ConfirmAppointmentHandler,
    "start-visit": StartVisitHandler,
    "start-repair": StartRepairHandler,
    "complete": CompleteAppointmentHandler,
}


@click.group()
def appointment() -> None:
    """Manage appointments."""


@appointment.command("schedule")
@click.option("--request", "request_id", required=True, type=int, help="Request ID.")
@click.option("--start", type=UTC_DATETIME, default=None,
              help="Visit start (UTC). Defaults to the earliest allowed slot.")
@click.option("--note", default="", help="Note for the visit.")
@click.pass_obj
def appointment_schedule(actor: Actor, request_id: int, start: datetime | None, note: str) -> None:
    """Schedule another visit for an approved request."""
    handler = ScheduleAppointmentHandler(runner(), scheduling_policy())

    try:
        appointment_id = handler.handle(request_id, actor, start, note)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Appointment #{appointment_id} scheduled for request #{request_id}.")


@appointment.command("assign")
@click.option("--id", "appointment_id", required=True, type=int, help="Appointment ID.")
@click.option("--technicians", "technician_ids", required=True, type=ID_LIST,
              help="Technician ids as '3,7'.")
@click.pass_obj
def appointment_assign(actor: Actor, appointment_id: int, technician_ids: list[int]) -> None:
    """Assign technicians to an appointment."""
    handler = AssignTechniciansHandler(runner(), scheduling_policy())

    try:
        handler.handle(appointment_id, technician_ids, actor)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Appointment #{appointment_id} assigned to {', '.join(f'#{t}' for t in technician_ids)}.")


@appointment.command("suggest")
@click.option("--id", "appointment_id", required=True, type=int, help="Appointment ID.")
def appointment_suggest(appointment_id: int) -> None:
    """Rank on-shift technicians for an appointment."""
    handler = SuggestTechniciansHandler(
        runner(),
        shift_roster(),
        scheduling_policy(),
        gap_cap_minutes=get_settings().advisor_gap_cap_minutes,
    )

    try:
        suggestions = handler.handle(appointment_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not suggestions:
        click.echo("No eligible technicians on shift.")
        return

    click.echo(f"{'ID':>5}  {'Name':<20} {'Today':>6} {'Gap':>5} {'Month':>6}")
    click.echo("-" * 48)
    for s in suggestions:
        click.echo(
            f"{s.technician_id:>5}  {s.name:<20} {s.day_count:>6} "
            f"{s.min_gap_minutes:>5} {s.month_count:>6}"
        )


@appointment.command("progress")
@click.option("--id", "appointment_id", required=True, type=int, help="Appointment ID.")
@click.option("--step", required=True, type=click.Choice(sorted(_STEPS)), help="Step to apply.")
@click.pass_obj
def appointment_progress(actor: Actor, appointment_id: int, step: str) -> None:
    """Move an appointment one step forward."""
    handler = _STEPS[step](runner())

    try:
        status = handler.handle(appointment_id, actor)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Appointment #{appointment_id} is now {status}")


@appointment.command("cancel")
@click.option("--id", "appointment_id", required=True, type=int, help="Appointment ID.")
@click.option("--reason", required=True, help="Cancellation reason.")
@click.pass_obj
def appointment_cancel(actor: Actor, appointment_id: int, reason: str) -> None:
    """Cancel an open appointment."""
    handler = CancelAppointmentHandler(runner())

    try:
        handler.handle(appointment_id, actor, reason)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Appointment #{appointment_id} cancelled.")


@appointment.command("start-work")
@click.option("--id", "appointment_id", required=True, type=int, help="Appointment ID.")
@click.pass_obj
def appointment_start_work(actor: Actor, appointment_id: int) -> None:
    """Clock the acting technician in on their work order."""
    try:
        StartWorkHandler(runner()).handle(appointment_id, actor)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Work started on appointment #{appointment_id}.")


@appointment.command("finish-work")
@click.option("--id", "appointment_id", required=True, type=int, help="Appointment ID.")
@click.pass_obj
def appointment_finish_work(actor: Actor, appointment_id: int) -> None:
    """Clock the acting technician out of their work order."""
    try:
        FinishWorkHandler(runner()).handle(appointment_id, actor)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Work finished on appointment #{appointment_id}.")


@appointment.command("show")
@click.option("--id", "appointment_id", required=True, type=int, help="Appointment ID.")
def appointment_show(appointment_id: int) -> None:
    """Show an appointment and its work orders."""
    handler = ShowAppointmentHandler(runner())

    try:
        dto = handler.handle(appointment_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Appointment #{dto.id}  (status={dto.status})")
    click.echo(f"Request:  #{dto.request_id}")
    click.echo(f"Window:   {dto.start} .. {dto.end}")
    click.echo()
    if not dto.work_orders:
        click.echo("No technicians assigned.")
        return
    click.echo(f"  {'Tech':>5}  {'Status':<10} {'Started':<32} Finished")
    click.echo(f"  {'-'*80}")
    for wo in dto.work_orders:
        click.echo(
            f"  {wo.technician_id:>5}  {wo.status:<10} {wo.actual_start or '-':<32} {wo.actual_end or '-'}"
        )
