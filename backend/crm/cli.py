# Overview: Flask CLI command groups for bootstrap, ledger maintenance, and order inspection.

# backend/crm/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create any missing tables. Safe to re-run.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Ledger:
# - python -m flask ledger reconcile
#   Post revenue for every PAID order that has no ledger entry.
# - python -m flask ledger summary --period 2024-05
#   Paid/pending totals and balance for one period (all time if omitted).
#
# Lead tasks:
# - python -m flask tasks due --days 1
#   List open follow-up tasks due within the next N days (overdue included).
#
# Orders:
# - python -m flask orders list --status PAID
#   List recent orders with totals.

import click
from datetime import timedelta
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .services import ledger_service, order_service, task_service
from .services.order_service import OrderError
from .services.sequence_service import current_order_number, format_order_number
from .time_utils import utcnow


def _money(cents: int) -> str:
    return f"{(cents or 0) / 100:,.2f}"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create all tables that do not exist yet."""
    click.echo("BUILD  Creating missing tables...")
    db.create_all()
    click.echo(f"PASS Database ready. Last order number: {format_order_number(current_order_number())}")


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


@click.group('ledger')
def ledger_group():
    """Ledger maintenance commands."""


@ledger_group.command('reconcile')
@with_appcontext
def reconcile_ledger():
    """Post missing revenue for PAID orders."""
    posted = ledger_service.reconcile_paid_orders()
    if not posted:
        click.echo("PASS Ledger is consistent, nothing to post.")
        return

    for entry in posted:
        click.echo(f"POST {entry.description}: {_money(entry.amount_cents)}")
    click.echo(f"PASS Posted {len(posted)} missing revenue entries.")


@ledger_group.command('summary')
@click.option('--period', default=None, help='Accounting period YYYY-MM (all time if omitted)')
@with_appcontext
def ledger_summary(period):
    """Show paid/pending totals and balance."""
    summary = ledger_service.period_summary(period)

    click.echo("\n" + "="*40)
    click.echo(f"Period: {period or 'all'}")
    click.echo("="*40)
    click.echo(f"{'Revenue (paid)':<22} {_money(summary['revenue_paid_cents']):>16}")
    click.echo(f"{'Expenses (paid)':<22} {_money(summary['expense_paid_cents']):>16}")
    click.echo(f"{'Balance':<22} {_money(summary['balance_cents']):>16}")
    click.echo(f"{'Revenue (pending)':<22} {_money(summary['revenue_pending_cents']):>16}")
    click.echo(f"{'Expenses (pending)':<22} {_money(summary['expense_pending_cents']):>16}")
    click.echo(f"{'Entries':<22} {summary['entry_count']:>16}")
    click.echo("="*40 + "\n")


@click.group('orders')
def orders_group():
    """Order inspection commands."""


@orders_group.command('list')
@click.option('--status', default=None, help='Filter by status (e.g. PAID)')
@with_appcontext
def list_orders_cli(status):
    """List recent orders, newest first."""
    try:
        orders = order_service.list_orders(status=status, limit=current_app.config["ORDERS_LIST_LIMIT"])
    except OrderError as e:
        raise click.BadParameter(str(e), param_hint="--status")

    if not orders:
        click.echo("No orders found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'Number':<8} {'Customer':<30} {'Status':<18} {'Stock':<7} {'Total'}")
    click.echo("="*80)

    for order in orders:
        stock_str = "Yes" if order.stock_deducted else "No"
        click.echo(
            f"{format_order_number(order.number):<8} {order.customer_name[:30]:<30} "
            f"{order.status:<18} {stock_str:<7} {_money(order.total_cents)}"
        )

    click.echo("="*80 + "\n")


@click.group('tasks')
def tasks_group():
    """Lead follow-up task commands."""


@tasks_group.command('due')
@click.option('--days', default=1, show_default=True, type=int, help='Look-ahead window in days')
@with_appcontext
def list_due_tasks(days):
    """List open tasks due within the window, earliest first."""
    now = utcnow()
    tasks = task_service.list_open_tasks(due_before=now + timedelta(days=days))

    if not tasks:
        click.echo("No open tasks due.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'Task':<6} {'Lead':<6} {'Type':<22} {'Due (UTC)':<20} {'Overdue'}")
    click.echo("="*80)

    for task in tasks:
        overdue_str = "Yes" if task.due_at < now else "No"
        click.echo(
            f"{task.id:<6} {task.lead_id:<6} {task_service.task_label(task.task_type):<22} "
            f"{task.due_at:%Y-%m-%d %H:%M}     {overdue_str}"
        )

    click.echo("="*80 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(ledger_group)
    app.cli.add_command(orders_group)
    app.cli.add_command(tasks_group)
