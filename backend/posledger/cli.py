# Overview: Flask CLI command groups for database bootstrap and ledger inspection.

# backend/posledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (non-destructive).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Inventory inspection:
# - python -m flask inventory list --company C1 --shop S1 [--restock-only]
#   List stock rows with quantity, WAC and restock flag.
#
# Reports:
# - python -m flask reports sales --company C1 --shop S1 --start 2026-01-01 --end 2026-01-31
#   Print the sales report totals and per-product rows.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import inventory_service, reporting_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    from . import models  # noqa: F401

    db.create_all()
    click.echo("PASS Database tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('list')
@click.option('--company', 'company_id', required=True, help='Company ID')
@click.option('--shop', 'shop_id', required=True, help='Shop ID')
@click.option('--restock-only', is_flag=True, help='Only rows below their minimum quantity')
@with_appcontext
def list_inventory(company_id, shop_id, restock_only):
    """List stock rows for a shop."""
    stocks = inventory_service.list_stock(company_id, shop_id, needs_restock=True if restock_only else None)
    if not stocks:
        click.echo("No inventory rows found.")
        return

    click.echo(f"{'Product':<20} {'Quantity':>12} {'WAC':>12} {'Minimum':>12}  Restock")
    click.echo("-" * 68)
    for stock in stocks:
        click.echo(
            f"{stock.product_id:<20} {stock.total_quantity:>12} {stock.weighted_average_cost:>12} "
            f"{stock.minimum_quantity:>12}  {'YES' if stock.needs_restock else ''}"
        )


@click.group('reports')
def reports_group():
    """Reporting commands."""


@reports_group.command('sales')
@click.option('--company', 'company_id', required=True, help='Company ID')
@click.option('--shop', 'shop_id', required=True, help='Shop ID')
@click.option('--start', required=True, help='Start (ISO date or datetime)')
@click.option('--end', required=True, help='End (ISO date or datetime, exclusive; a date covers the whole day)')
@with_appcontext
def sales_report(company_id, shop_id, start, end):
    """Print sales, cost and profit totals for a period."""
    try:
        report = reporting_service.sales_report(company_id, shop_id, start, end)
    except reporting_service.ReportError as exc:
        raise click.UsageError(str(exc))

    click.echo(f"Sales report {report['start']} -> {report['end']}")
    click.echo(f"  Total sales:        {report['total_sales']}")
    click.echo(f"  Total product cost: {report['total_product_cost']}")
    click.echo(f"  Total discounts:    {report['total_discounts']}")
    click.echo(f"  Total cost:         {report['total_cost']}")
    click.echo(f"  Total profit:       {report['total_profit']}")
    for row in report["sales_details"]:
        click.echo(
            f"    {row['finished_good_id']:<20} qty={row['finishedgood_qty']} "
            f"sale={row['sale']} cost={row['cost']} profit={row['profit']}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(reports_group)
