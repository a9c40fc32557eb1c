"""CLI commands for the RepairRequest aggregate."""

from __future__ import annotations

import click

from rms.application.cancel_request import CancelRequestHandler
from rms.application.dto import RequestDTO
from rms.application.escalate_request import EscalateRequestHandler
from rms.application.link_follow_up import LinkFollowUpHandler
from rms.application.show_request import ShowRequestHandler
from rms.application.submit_feedback import SubmitFeedbackHandler
from rms.application.submit_request import SubmitRequestHandler
from rms.application.triage_request import TriageRequestHandler
from rms.application.verify_acceptance import VerifyAcceptanceHandler
from rms.domain.exceptions import DomainException
from rms.domain.model.value_objects import Actor
from rms.infrastructure.bootstrap import runner, scheduling_policy


@click.group()
def request() -> None:
    """Manage repair requests."""


@request.command("submit")
@click.option("--description", required=True, help="What needs repairing.")
@click.option("--apartment", "apartment_id", type=int, default=None, help="Apartment id.")
@click.option("--area-object", "common_area_object_id", type=int, default=None,
              help="Common-area object id.")
@click.option("--issue", "issue_id", type=int, default=None, help="Issue type id.")
@click.option("--parent", "parent_request_id", type=int, default=None,
              help="Request this one follows up.")
@click.option("--emergency", is_flag=True, default=False, help="Flag as an emergency.")
@click.pass_obj
def request_submit(
    actor: Actor,
    description: str,
    apartment_id: int | None,
    common_area_object_id: int | None,
    issue_id: int | None,
    parent_request_id: int | None,
    emergency: bool,
) -> None:
    """Submit a new repair request."""
    handler = SubmitRequestHandler(runner())

    try:
        request_id = handler.handle(
            actor=actor,
            description=description,
            apartment_id=apartment_id,
            common_area_object_id=common_area_object_id,
            issue_id=issue_id,
            parent_request_id=parent_request_id,
            is_emergency=emergency,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Request #{request_id} submitted  (status=PENDING)")


@request.command("triage")
@click.option("--id", "request_id", required=True, type=int, help="Request ID.")
@click.option("--approve/--reject", default=True, help="Approve or reject the request.")
@click.option("--reason", default="", help="Reason, required when rejecting.")
@click.pass_obj
def request_triage(actor: Actor, request_id: int, approve: bool, reason: str) -> None:
    """Approve or reject a request awaiting triage."""
    handler = TriageRequestHandler(runner(), scheduling_policy())

    try:
        status = handler.handle(request_id, approve, actor, reason)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Request #{request_id} is now {status.value}")


@request.command("escalate")
@click.option("--id", "request_id", required=True, type=int, help="Request ID.")
@click.option("--reason", default="", help="Why the manager must decide.")
@click.pass_obj
def request_escalate(actor: Actor, request_id: int, reason: str) -> None:
    """Send a pending request to the manager."""
    handler = EscalateRequestHandler(runner())

    try:
        handler.handle(request_id, actor, reason)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Request #{request_id} escalated to the manager.")


@request.command("cancel")
@click.option("--id", "request_id", required=True, type=int, help="Request ID.")
@click.option("--reason", required=True, help="Cancellation reason.")
@click.pass_obj
def request_cancel(actor: Actor, request_id: int, reason: str) -> None:
    """Cancel a request and its open appointments."""
    handler = CancelRequestHandler(runner())

    try:
        cancelled = handler.handle(request_id, actor, reason)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Request #{request_id} cancelled.")
    if cancelled:
        click.echo(f"Cancelled appointments: {', '.join(f'#{a}' for a in cancelled)}")


@request.command("accept")
@click.option("--id", "request_id", required=True, type=int, help="Request ID.")
@click.option("--note", default="", help="Acceptance note.")
@click.option("--media", "media_ids", multiple=True, help="Media id of a verification photo; repeatable.")
@click.pass_obj
def request_accept(actor: Actor, request_id: int, note: str, media_ids: tuple[str, ...]) -> None:
    """Confirm the finished work and complete the request."""
    handler = VerifyAcceptanceHandler(runner())

    try:
        handler.handle(request_id, actor, note, media_ids)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Request #{request_id} completed.")


@request.command("link")
@click.option("--id", "request_id", required=True, type=int, help="Follow-up request ID.")
@click.option("--parent", "parent_id", required=True, type=int, help="Parent request ID.")
@click.pass_obj
def request_link(actor: Actor, request_id: int, parent_id: int) -> None:
    """Attach a request as a follow-up of another."""
    handler = LinkFollowUpHandler(runner())

    try:
        handler.handle(request_id, parent_id, actor)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Request #{request_id} now follows up #{parent_id}.")


@request.command("feedback")
@click.option("--id", "request_id", required=True, type=int, help="Request ID.")
@click.option("--comment", default="", help="Feedback text.")
@click.option("--rating", type=click.IntRange(1, 5), default=None, help="Rating from 1 to 5.")
@click.option("--reply-to", "parent_feedback_id", type=int, default=None,
              help="Feedback entry this replies to.")
@click.pass_obj
def request_feedback(
    actor: Actor,
    request_id: int,
    comment: str,
    rating: int | None,
    parent_feedback_id: int | None,
) -> None:
    """Rate a completed request or reply to its feedback."""
    handler = SubmitFeedbackHandler(runner())

    try:
        feedback_id = handler.handle(request_id, actor, comment, rating, parent_feedback_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Feedback #{feedback_id} recorded.")


def _display_request(dto: RequestDTO) -> None:
    click.echo(f"Request #{dto.id}  (status={dto.status})")
    click.echo(f"Origin:   {dto.origin}  requester #{dto.requester_id}")
    click.echo(f"Target:   {dto.target}")
    click.echo(f"Created:  {dto.created_at}")
    if dto.is_emergency:
        click.echo("Emergency: yes")
    if dto.parent_request_id is not None:
        click.echo(f"Follows:  #{dto.parent_request_id}")
    if dto.acceptance_time:
        click.echo(f"Accepted: {dto.acceptance_time}")
    if dto.verification_media_ids:
        click.echo(f"Photos:   {', '.join(dto.verification_media_ids)}")
    click.echo(f"Description: {dto.description}")
    click.echo()

    click.echo(f"  {'Status':<28} {'Actor':>6}  {'When':<32} Note")
    click.echo(f"  {'-'*80}")
    for row in dto.tracking:
        click.echo(f"  {row.status:<28} {row.actor_id:>6}  {row.recorded_at:<32} {row.note}")
    click.echo()

    if dto.appointment_ids:
        click.echo(f"Appointments: {', '.join(f'#{a}' for a in dto.appointment_ids)}")
    if dto.invoice_ids:
        click.echo(f"Invoices:     {', '.join(f'#{i}' for i in dto.invoice_ids)}")
    for blocker in dto.blockers:
        click.echo(f"Waiting on: {blocker}")


@request.command("show")
@click.option("--id", "request_id", required=True, type=int, help="Request ID to display.")
def request_show(request_id: int) -> None:
    """Show a request with its tracking history."""
    handler = ShowRequestHandler(runner())

    try:
        dto = handler.handle(request_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_request(dto)
