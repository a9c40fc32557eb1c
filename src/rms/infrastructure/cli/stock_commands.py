"""CLI commands for accessory stock."""

from __future__ import annotations

import click

from rms.application.show_stock import ShowStockHandler
from rms.application.stock_in import RequestStockInHandler, ReviewStockInHandler
from rms.domain.exceptions import DomainException
from rms.domain.model.value_objects import Actor, Money
from rms.infrastructure.bootstrap import runner
from rms.infrastructure.cli.params import MONEY


@click.group()
def stock() -> None:
    """Manage accessory stock."""


@stock.command("show")
def stock_show() -> None:
    """Show stock levels derived from the ledger."""
    handler = ShowStockHandler(runner())
    levels = handler.handle()

    if not levels:
        click.echo("No accessories in the catalog.")
        return

    click.echo(f"{'ID':>4}  {'Accessory':<24} {'Price':>12} {'On hand':>8} {'Pending':>8}")
    click.echo("-" * 60)
    for level in levels:
        click.echo(
            f"{level.accessory_id:>4}  {level.name:<24} {level.price:>12} "
            f"{level.on_hand:>8} {level.pending_imports:>8}"
        )


@stock.command("import")
@click.option("--accessory", "accessory_id", required=True, type=int, help="Accessory id.")
@click.option("--quantity", required=True, type=int, help="Units received.")
@click.option("--unit-price", type=MONEY, default=None, help="Purchase price per unit.")
@click.option("--note", default="", help="Delivery note.")
@click.option("--receipt", "receipt_ref", default=None, help="Media id of the supplier receipt.")
@click.pass_obj
def stock_import(
    actor: Actor,
    accessory_id: int,
    quantity: int,
    unit_price: Money | None,
    note: str,
    receipt_ref: str | None,
) -> None:
    """Request a stock-in; it counts once approved."""
    handler = RequestStockInHandler(runner())

    try:
        movement_id = handler.handle(accessory_id, quantity, actor, unit_price, note, receipt_ref)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Stock-in #{movement_id} requested (status=PENDING)")


@stock.command("review")
@click.option("--id", "movement_id", required=True, type=int, help="Stock-in id.")
@click.option("--approve/--reject", default=True, help="Approve or reject the stock-in.")
@click.option("--reason", default="", help="Reason when rejecting.")
@click.pass_obj
def stock_review(actor: Actor, movement_id: int, approve: bool, reason: str) -> None:
    """Approve or reject a pending stock-in."""
    handler = ReviewStockInHandler(runner())

    try:
        status = handler.handle(movement_id, approve, actor, reason)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Stock-in #{movement_id} is now {status}")
