#!/usr/bin/env python3
"""
Vestor command-line interface.

Operates on a JSON state snapshot in ``--data-dir``: every mutating command
loads the snapshot, runs one lifecycle operation and saves the result.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar

import click
import yaml
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from rich import box
from rich.console import Console
from rich.table import Table

from vestor.core import config
from vestor.core.input_validation_schemas import (
    CreateTicketInput,
    InitRegistryInput,
    MintInput,
    TicketActionInput,
)
from vestor.core.state_store import VestingStateStore
from vestor.core.structured_logger import configure_logging
from vestor.core.token_ledger import InMemoryTokenLedger
from vestor.core.vesting_exceptions import VestingError
from vestor.core.vesting_program import VestingProgram

logger = logging.getLogger(__name__)

console = Console()

ModelT = TypeVar("ModelT", bound=BaseModel)


def _validate(model: type[ModelT], **values: Any) -> ModelT:
    try:
        return model(**values)
    except PydanticValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
        raise click.BadParameter(problems) from exc


def _fail(exc: VestingError) -> click.ClickException:
    logger.debug("CLI error: %s", exc, exc_info=True)
    return click.ClickException(f"{exc.code}: {exc.message}")


def _store(ctx: click.Context) -> VestingStateStore:
    return ctx.obj["store"]


def _run(ctx: click.Context, action: Callable[[VestingProgram], Any], persist: bool = True) -> Any:
    """Load the snapshot, apply ``action``, and save only if it succeeded."""
    store = _store(ctx)
    try:
        program = store.load()
        result = action(program)
        if persist:
            store.save(program)
    except VestingError as exc:
        raise _fail(exc) from exc
    return result


def _emit(ctx: click.Context, payload: Dict[str, Any], title: str) -> None:
    """Render a payload respecting CLI formatting preferences."""
    output_format = ctx.obj["output_format"]
    if output_format == "json":
        click.echo(json.dumps(payload, indent=2))
        return
    if output_format == "yaml":
        click.echo(yaml.safe_dump(payload, sort_keys=False))
        return

    table = Table(show_header=False, box=box.ROUNDED, title=title)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    for key, value in payload.items():
        table.add_row(str(key), json.dumps(value) if isinstance(value, (dict, list)) else str(value))
    console.print(table)


@click.group()
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=lambda: config.DATA_DIR,
    show_default="$VESTOR_DATA_DIR or ./vestor_data",
    help="Directory holding the vesting state snapshot.",
)
@click.option("--json-output", is_flag=True, help="Output raw JSON")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json", "yaml"]),
    default="table",
    show_default=True,
    help="Output format.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=config.LOG_LEVEL,
    show_default=True,
    help="Minimum log level.",
)
@click.option("--log-json", is_flag=True, default=config.LOG_JSON, help="Emit logs as JSON lines.")
@click.pass_context
def cli(
    ctx: click.Context,
    data_dir: Path,
    json_output: bool,
    output_format: str,
    log_level: str,
    log_json: bool,
):
    """
    Vestor - linear token vesting with escrowed grants.

    Initialize a registry, fund grantor accounts, then create, claim and
    revoke vesting tickets.
    """
    configure_logging(level=log_level, json_output=log_json, log_file=config.LOG_FILE)
    ctx.ensure_object(dict)
    ctx.obj["store"] = VestingStateStore(str(data_dir))
    ctx.obj["output_format"] = "json" if json_output else output_format


@cli.command("init")
@click.option("--registry-id", default=lambda: config.REGISTRY_ID, help="Registry identifier.")
@click.option("--nonce", type=int, default=lambda: config.REGISTRY_NONCE, help="Authority derivation nonce (0-255).")
@click.option("--asset-id", default=lambda: config.ASSET_ID, help="Asset held by every vault.")
@click.option("--force", is_flag=True, help="Overwrite an existing snapshot.")
@click.pass_context
def init_registry(ctx: click.Context, registry_id: str, nonce: int, asset_id: str, force: bool):
    """Create an empty registry and ledger."""
    params = _validate(InitRegistryInput, registry_id=registry_id, nonce=nonce, asset_id=asset_id)
    store = _store(ctx)
    if store.exists() and not force:
        raise click.ClickException(f"State already exists at {store.state_file}; use --force to replace it.")
    try:
        program = VestingProgram.initialize(
            params.registry_id, InMemoryTokenLedger(params.asset_id), nonce=params.nonce
        )
        store.save(program)
    except VestingError as exc:
        raise _fail(exc) from exc
    _emit(
        ctx,
        {
            "registry_id": program.registry.registry_id,
            "asset_id": params.asset_id,
            "next_sequence": program.registry.next_sequence,
            "authority": str(program.registry.authority),
            "state_file": store.state_file,
        },
        "Registry",
    )


@cli.command("mint")
@click.argument("account")
@click.argument("amount", type=int)
@click.pass_context
def mint(ctx: click.Context, account: str, amount: int):
    """Credit AMOUNT units to ACCOUNT (development funding)."""
    params = _validate(MintInput, account=account, amount=amount)
    balance = _run(ctx, lambda program: program.ledger.mint(params.account, params.amount))
    _emit(ctx, {"account": params.account, "balance": balance}, "Balance")


@cli.command("balance")
@click.argument("account")
@click.pass_context
def balance(ctx: click.Context, account: str):
    """Show the ledger balance of ACCOUNT."""
    amount = _run(ctx, lambda program: program.ledger.balance_of(account), persist=False)
    _emit(ctx, {"account": account, "balance": amount}, "Balance")


@cli.command("create")
@click.option("--grantor", required=True, help="Funding account; authorizes the escrow debit.")
@click.option("--beneficiary", required=True, help="Account entitled to claim.")
@click.option("--cliff-days", type=int, default=0, show_default=True)
@click.option("--vesting-days", type=int, required=True)
@click.option("--amount", type=int, required=True)
@click.option("--irrevocable", is_flag=True, help="Forbid revocation.")
@click.option("--now", type=int, help="Override the creation timestamp (unix seconds).")
@click.pass_context
def create(
    ctx: click.Context,
    grantor: str,
    beneficiary: str,
    cliff_days: int,
    vesting_days: int,
    amount: int,
    irrevocable: bool,
    now: Optional[int],
):
    """Escrow a grant and open a vesting ticket."""
    params = _validate(
        CreateTicketInput,
        grantor=grantor,
        beneficiary=beneficiary,
        cliff_days=cliff_days,
        vesting_days=vesting_days,
        amount=amount,
        irrevocable=irrevocable,
    )
    ticket = _run(
        ctx,
        lambda program: program.create(
            params.grantor,
            params.beneficiary,
            params.cliff_days,
            params.vesting_days,
            params.amount,
            irrevocable=params.irrevocable,
            now=now,
        ),
    )
    _emit(ctx, ticket.to_dict(), "Ticket created")


@cli.command("claim")
@click.argument("ticket_id")
@click.option("--caller", required=True, help="Beneficiary address.")
@click.option("--now", type=int, help="Override the claim timestamp (unix seconds).")
@click.pass_context
def claim(ctx: click.Context, ticket_id: str, caller: str, now: Optional[int]):
    """Claim everything unlocked on TICKET_ID."""
    params = _validate(TicketActionInput, ticket_id=ticket_id, caller=caller)
    amount = _run(ctx, lambda program: program.claim(params.ticket_id, params.caller, now=now))
    _emit(ctx, {"ticket_id": params.ticket_id, "claimed": amount}, "Claim")


@cli.command("revoke")
@click.argument("ticket_id")
@click.option("--caller", required=True, help="Grantor address.")
@click.option("--now", type=int, help="Override the revocation timestamp (unix seconds).")
@click.pass_context
def revoke(ctx: click.Context, ticket_id: str, caller: str, now: Optional[int]):
    """Revoke TICKET_ID and refund its remaining balance."""
    params = _validate(TicketActionInput, ticket_id=ticket_id, caller=caller)
    refund = _run(ctx, lambda program: program.revoke(params.ticket_id, params.caller, now=now))
    _emit(ctx, {"ticket_id": params.ticket_id, "refunded": refund}, "Revoke")


@cli.command("show")
@click.argument("ticket_id")
@click.option("--now", type=int, help="Evaluate vesting progress at this timestamp.")
@click.pass_context
def show(ctx: click.Context, ticket_id: str, now: Optional[int]):
    """Show a ticket and its vesting progress."""

    def _describe(program: VestingProgram) -> Dict[str, Any]:
        payload = program.get_ticket(ticket_id).to_dict()
        payload["progress"] = program.get_vesting_status(ticket_id, now=now)
        return payload

    _emit(ctx, _run(ctx, _describe, persist=False), "Ticket")


@cli.command("list")
@click.option("--grantor", help="Only tickets funded by this account.")
@click.option("--beneficiary", help="Only tickets claimable by this account.")
@click.pass_context
def list_tickets(ctx: click.Context, grantor: Optional[str], beneficiary: Optional[str]):
    """List tickets in creation order."""
    tickets = _run(
        ctx,
        lambda program: program.list_tickets(grantor=grantor, beneficiary=beneficiary),
        persist=False,
    )
    if ctx.obj["output_format"] != "table":
        payload = {"tickets": [ticket.to_dict() for ticket in tickets]}
        if ctx.obj["output_format"] == "json":
            click.echo(json.dumps(payload, indent=2))
        else:
            click.echo(yaml.safe_dump(payload, sort_keys=False))
        return

    table = Table(title="Vesting tickets", box=box.SIMPLE)
    for column in ("Seq", "Ticket", "Beneficiary", "Total", "Claimed", "Remaining", "Status"):
        table.add_column(column)
    for ticket in tickets:
        table.add_row(
            str(ticket.sequence),
            ticket.ticket_id[:16],
            ticket.beneficiary,
            str(ticket.total_amount),
            str(ticket.claimed_amount),
            str(ticket.remaining_balance),
            ticket.status.value,
        )
    console.print(table)


def main() -> int:
    cli(obj={})
    return 0


if __name__ == "__main__":
    sys.exit(main())
