"""CLI commands for inspection and repair reports."""

from __future__ import annotations

import click

from rms.application.record_approval import RecordApprovalHandler
from rms.application.resubmit_report import ResubmitReportHandler
from rms.application.show_report import ShowReportHandler
from rms.application.submit_report import SubmitInspectionReportHandler, SubmitRepairReportHandler
from rms.domain.exceptions import DomainException
from rms.domain.model.report import ApprovalDecision, FaultOwner, ReportKind, SolutionType
from rms.domain.model.value_objects import Actor
from rms.infrastructure.bootstrap import runner
from rms.infrastructure.cli.params import enum_choice

_KIND = click.option(
    "--kind", type=enum_choice(ReportKind), required=True, help="INSPECTION or REPAIR."
)


@click.group()
def report() -> None:
    """Manage inspection and repair reports."""


@report.command("inspect")
@click.option("--appointment", "appointment_id", required=True, type=int, help="Appointment ID.")
@click.option("--fault", "fault_owner", type=enum_choice(FaultOwner), required=True,
              help="Who caused the fault.")
@click.option("--solution-type", type=enum_choice(SolutionType), required=True,
              help="How it will be fixed.")
@click.option("--description", required=True, help="Findings.")
@click.option("--solution", required=True, help="Planned fix.")
@click.pass_obj
def report_inspect(
    actor: Actor,
    appointment_id: int,
    fault_owner: str,
    solution_type: str,
    description: str,
    solution: str,
) -> None:
    """File the inspection report for a visit (opens a draft invoice)."""
    handler = SubmitInspectionReportHandler(runner())

    try:
        result = handler.handle(
            appointment_id,
            actor,
            FaultOwner(fault_owner.upper()),
            SolutionType(solution_type.upper()),
            description,
            solution,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Inspection report #{result.report_id} filed; draft invoice #{result.invoice_id} opened.")


@report.command("repair")
@click.option("--appointment", "appointment_id", required=True, type=int, help="Appointment ID.")
@click.option("--description", required=True, help="Work carried out.")
@click.pass_obj
def report_repair(actor: Actor, appointment_id: int, description: str) -> None:
    """File the repair report for a visit."""
    handler = SubmitRepairReportHandler(runner())

    try:
        report_id = handler.handle(appointment_id, actor, description)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Repair report #{report_id} filed.")


@report.command("review")
@_KIND
@click.option("--id", "report_id", required=True, type=int, help="Report ID.")
@click.option("--approve/--reject", default=True, help="Approve or reject the report.")
@click.option("--comment", default="", help="Comment, required when rejecting.")
@click.pass_obj
def report_review(actor: Actor, kind: str, report_id: int, approve: bool, comment: str) -> None:
    """Sign the next step of a report's approval chain."""
    handler = RecordApprovalHandler(runner())
    decision = ApprovalDecision.APPROVED if approve else ApprovalDecision.REJECTED

    try:
        status = handler.handle(ReportKind(kind.upper()), report_id, actor, decision, comment)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"{kind.title()} report #{report_id} is now {status.value}")


@report.command("resubmit")
@_KIND
@click.option("--id", "report_id", required=True, type=int, help="Report ID.")
@click.option("--description", required=True, help="Revised findings or work.")
@click.option("--solution", default="", help="Revised fix (inspection only).")
@click.option("--fault", "fault_owner", type=enum_choice(FaultOwner), default=None,
              help="Revised fault owner (inspection only).")
@click.option("--solution-type", type=enum_choice(SolutionType), default=None,
              help="Revised solution type (inspection only).")
@click.pass_obj
def report_resubmit(
    actor: Actor,
    kind: str,
    report_id: int,
    description: str,
    solution: str,
    fault_owner: str | None,
    solution_type: str | None,
) -> None:
    """Rework a rejected report and restart its approval chain."""
    handler = ResubmitReportHandler(runner())

    try:
        revision = handler.handle(
            ReportKind(kind.upper()),
            report_id,
            actor,
            description,
            solution,
            FaultOwner(fault_owner.upper()) if fault_owner else None,
            SolutionType(solution_type.upper()) if solution_type else None,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"{kind.title()} report #{report_id} resubmitted as revision {revision}.")


@report.command("show")
@_KIND
@click.option("--id", "report_id", required=True, type=int, help="Report ID.")
def report_show(kind: str, report_id: int) -> None:
    """Show a report's approval status and history."""
    handler = ShowReportHandler(runner())

    try:
        dto = handler.handle(ReportKind(kind.upper()), report_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"{dto.kind.title()} report #{dto.id}  (status={dto.status}, revision={dto.revision})")
    click.echo(f"Next sign-off: {dto.next_role or '-'}")
    click.echo()
    if not dto.approvals:
        click.echo("No approvals recorded.")
        return
    click.echo(f"  {'Rev':>3}  {'Role':<16} {'User':>6}  {'Decision':<9} Comment")
    click.echo(f"  {'-'*60}")
    for a in dto.approvals:
        click.echo(f"  {a.revision:>3}  {a.role:<16} {a.approver_id:>6}  {a.decision:<9} {a.comment}")
