# Overview: Flask CLI command group for ledger maintenance and inspection.

# backend/contact_ledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask ledger <command> [options]
#
# Maintenance:
# - python -m flask ledger backfill
#   Build ledger history from sales, purchases, confirmed payments and returns,
#   then add opening balances. Safe to re-run.
# - python -m flask ledger repair
#   Replay every customer and supplier ledger and fix drifted balances.
# - python -m flask ledger recalc --type customer --id 12 [--branch-id 2]
#   Replay one contact. --branch-id needs LEDGER_BRANCH_SILOED=1.
#
# Inspection:
# - python -m flask ledger statement --type supplier --id 4 [--start 2026-01-01 --end 2026-01-31]
#   Print a contact's entries with running balances.
# - python -m flask ledger advance --customer-id 12
#   Show a customer's unapplied advance balance.

import click
from flask.cli import with_appcontext

from .models.ledger import CONTACT_TYPES
from .money import money_str
from .services import ledger_service
from .services import maintenance_service
from .services.ledger_service import LedgerError
from .time_utils import parse_iso_datetime


@click.group('ledger')
def ledger_group():
    """Contact ledger maintenance and inspection commands."""


@ledger_group.command('backfill')
@with_appcontext
def backfill_cli():
    """Synthesize ledger entries from historical records."""
    click.echo("Running historical ledger backfill...")
    summary = maintenance_service.backfill_historical_ledger()

    click.echo("\n" + "=" * 60)
    click.echo(f"{'Phase':<20} {'Created':>10} {'Skipped':>10} {'Failed':>10}")
    click.echo("=" * 60)
    for phase, counts in summary.to_dict().items():
        if not isinstance(counts, dict):
            continue
        click.echo(f"{phase:<20} {counts['created']:>10} {counts['skipped']:>10} {counts['failed']:>10}")
    click.echo("=" * 60)

    if summary.failed:
        click.echo(f"WARN  Backfill finished with {summary.failed} failed record(s). Check the log.")
    else:
        click.echo(f"PASS Backfill complete: {summary.created} entries created")


@ledger_group.command('repair')
@with_appcontext
def repair_cli():
    """Recalculate all customer and supplier ledgers."""
    click.echo("Repairing ledger balances...")
    summary = maintenance_service.repair_all_ledger_balances()

    click.echo(f"  Customers processed: {summary.customers}")
    click.echo(f"  Suppliers processed: {summary.suppliers}")
    click.echo(f"  Entries updated: {summary.entries_updated}")
    click.echo(f"  Balances updated: {summary.balances_updated}")
    if summary.failed:
        click.echo(f"WARN  {summary.failed} contact(s) failed. Check the log.")
    else:
        click.echo("PASS Repair complete")


@ledger_group.command('recalc')
@click.option('--type', 'contact_type', type=click.Choice(list(CONTACT_TYPES)), required=True, help='Contact type')
@click.option('--id', 'contact_id', type=int, required=True, help='Contact ID')
@click.option('--branch-id', type=int, help='Replay one branch only (branch-siloed ledgers)')
@with_appcontext
def recalc_cli(contact_type, contact_id, branch_id):
    """Replay one contact's ledger."""
    try:
        result = ledger_service.recalculate_contact_detailed(contact_id, contact_type, branch_id)
    except LedgerError as e:
        click.echo(f"FAIL Error: {str(e)}")
        return

    click.echo(f"PASS Recalculated {contact_type} {contact_id}")
    click.echo(f"   Final balance: {money_str(result.final_balance)}")
    click.echo(f"   Ledger balance: {money_str(result.ledger_balance)}")
    click.echo(f"   Entries updated: {result.entries_updated}")


@ledger_group.command('statement')
@click.option('--type', 'contact_type', type=click.Choice(list(CONTACT_TYPES)), required=True, help='Contact type')
@click.option('--id', 'contact_id', type=int, required=True, help='Contact ID')
@click.option('--start', help='Start date (ISO-8601, inclusive)')
@click.option('--end', help='End date (ISO-8601, whole day inclusive)')
@click.option('--branch-id', type=int, help='Filter by branch')
@with_appcontext
def statement_cli(contact_type, contact_id, start, end, branch_id):
    """Print a contact's ledger statement."""
    try:
        start_dt = parse_iso_datetime(start)
        end_dt = parse_iso_datetime(end)
    except ValueError:
        click.echo("FAIL --start and --end must be ISO-8601 dates")
        return

    try:
        entries = ledger_service.get_statement(
            contact_id, contact_type, start_date=start_dt, end_date=end_dt, branch_id=branch_id
        )
    except LedgerError as e:
        click.echo(f"FAIL Error: {str(e)}")
        return

    if not entries:
        click.echo("No ledger entries found.")
        return

    click.echo("\n" + "=" * 110)
    click.echo(f"{'Date':<22} {'Type':<17} {'Description':<30} {'Debit':>12} {'Credit':>12} {'Balance':>12}")
    click.echo("=" * 110)
    for entry in entries:
        description = (entry.description or "")[:30]
        click.echo(
            f"{entry.transaction_date.strftime('%Y-%m-%d %H:%M:%S'):<22} {entry.transaction_type:<17} "
            f"{description:<30} {money_str(entry.debit_amount):>12} {money_str(entry.credit_amount):>12} "
            f"{money_str(entry.running_balance):>12}"
        )
    click.echo("=" * 110 + "\n")


@ledger_group.command('advance')
@click.option('--customer-id', type=int, required=True, help='Customer ID')
@with_appcontext
def advance_cli(customer_id):
    """Show a customer's unapplied advance balance."""
    try:
        balance = ledger_service.calculate_advance_balance(customer_id)
    except LedgerError as e:
        click.echo(f"FAIL Error: {str(e)}")
        return

    click.echo(f"Advance balance for customer {customer_id}: {money_str(balance)}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(ledger_group)
