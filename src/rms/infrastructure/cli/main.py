import click

from rms.domain.model.value_objects import Actor, Role
from rms.infrastructure.bootstrap import init_logging
from rms.infrastructure.cli.appointment_commands import appointment
from rms.infrastructure.cli.catalog_commands import catalog
from rms.infrastructure.cli.invoice_commands import invoice
from rms.infrastructure.cli.params import enum_choice
from rms.infrastructure.cli.report_commands import report
from rms.infrastructure.cli.request_commands import request
from rms.infrastructure.cli.stock_commands import stock
from rms.infrastructure.cli.worker_commands import worker


@click.group()
@click.option("--user", "user_id", type=int, default=0, show_default=True,
              envvar="RMS_USER", help="Acting user id, as issued by the identity service.")
@click.option("--role", type=enum_choice(Role), default=Role.SYSTEM.value, show_default=True,
              envvar="RMS_ROLE", help="Role claim of the acting user.")
@click.pass_context
def cli(ctx: click.Context, user_id: int, role: str) -> None:
    """RMS - Repair request lifecycle and settlement engine"""
    init_logging()
    ctx.obj = Actor(user_id=user_id, role=Role(role.upper()))


# Register command groups
cli.add_command(request)
cli.add_command(appointment)
cli.add_command(report)
cli.add_command(invoice)
cli.add_command(stock)
cli.add_command(catalog)
cli.add_command(worker)
