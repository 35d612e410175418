# Overview: Flask CLI command groups for bootstrap, inspection, and ledger maintenance.

# backend/restoledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Business settings:
# - python -m flask settings show
#   Print the settings snapshot every checkout currently uses.
# - python -m flask settings set referral_bonus 5.00
#   Change one setting (money in major units; empty string resets to default).
#
# Customers and wallets:
# - python -m flask customers create --name "Asha Patel" --email asha@example.com [--referral-code XY4D-P92M-JQ8T]
#   Register a customer (signup bonus applies).
# - python -m flask wallet show 12
#   Balance, loyalty position and the last 10 wallet entries.
# - python -m flask wallet credit 12 2.50 --note "Goodwill"
#   Manual ADJUSTMENT credit.
#
# Orders:
# - python -m flask orders accept CDM1810-004 --minutes 15
#   Accept a placed order with a ready estimate.
# - python -m flask orders sweep-ready [--loop] [--interval 60]
#   Move accepted orders past their estimate to READY (once, or forever with --loop).
#
# Loyalty:
# - python -m flask loyalty redeem 12
#   Convert the customer's spendable points to wallet credit.

import json

import click
from flask.cli import with_appcontext

from .errors import LedgerError
from .extensions import db
from .models import Customer
from .models.customers import SOURCE_ADJUSTMENT
from .services import loyalty_service, readiness_service, referral_service, settings_service, wallet_service
from .services.concurrency import run_unit_of_work
from .time_utils import utcnow
from .validation import format_money, to_cents


# =============================================================================
# SYSTEM COMMANDS
# =============================================================================

@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


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


# =============================================================================
# SETTINGS COMMANDS
# =============================================================================

@click.group('settings')
def settings_group():
    """Business settings inspection and edits."""


@settings_group.command('show')
@with_appcontext
def show_settings():
    """Print the current settings snapshot."""
    click.echo(json.dumps(settings_service.get_settings().to_dict(), indent=2))


@settings_group.command('set')
@click.argument('key')
@click.argument('value')
@with_appcontext
def set_setting(key, value):
    """Set one setting. Money keys take major units (e.g. 5.00)."""
    try:
        snapshot = settings_service.save_settings({key: value})
    except LedgerError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)
    click.echo(f"PASS {key} updated")
    click.echo(json.dumps(snapshot.to_dict(), indent=2))


# =============================================================================
# CUSTOMER AND WALLET COMMANDS
# =============================================================================

@click.group('customers')
def customers_group():
    """Customer bootstrap commands."""


@customers_group.command('create')
@click.option('--name', 'full_name', required=True, help='Full name')
@click.option('--email', help='Email address')
@click.option('--mobile', 'mobile_number', help='Mobile number')
@click.option('--referral-code', help="Referrer's code")
@with_appcontext
def create_customer_cli(full_name, email, mobile_number, referral_code):
    """Register a customer."""
    try:
        customer = referral_service.register_customer(
            full_name=full_name,
            email=email,
            mobile_number=mobile_number,
            referral_code=referral_code,
        )
    except LedgerError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)

    click.echo(f"PASS Created customer: {customer.full_name} (ID: {customer.id}, Code: {customer.referral_code})")
    if customer.referred_by_customer_id:
        click.echo(f"     Referred by customer {customer.referred_by_customer_id}")


@click.group('wallet')
def wallet_group():
    """Wallet inspection and manual adjustments."""


@wallet_group.command('show')
@click.argument('customer_id', type=int)
@with_appcontext
def show_wallet(customer_id):
    """Show a customer's wallet summary."""
    summary = wallet_service.wallet_summary(customer_id, settings_service.get_settings(), utcnow())

    click.echo(f"\nBalance:          {summary['wallet_balance']}")
    click.echo(f"Loyalty points:   {summary['loyalty_points']} (pending {summary['loyalty_pending_points']})")
    click.echo(f"Referred users:   {summary['referred_users_count']}")
    click.echo("\n" + "=" * 60)
    for row in summary['history']:
        click.echo(f"{row['date'] or '-':<14} {row['title']:<28} {row['amount']:>12}")
    click.echo("=" * 60 + "\n")


@wallet_group.command('credit')
@click.argument('customer_id', type=int)
@click.argument('amount')
@click.option('--note', default='Manual adjustment', show_default=True)
@with_appcontext
def credit_wallet(customer_id, amount, note):
    """Credit a wallet (ADJUSTMENT)."""
    try:
        cents = to_cents(amount, 'amount')
        if not db.session.query(Customer.id).filter_by(id=customer_id).first():
            click.echo(f"FAIL Customer {customer_id} not found")
            raise SystemExit(1)
        txn = run_unit_of_work(
            lambda: wallet_service.credit(customer_id, cents, source=SOURCE_ADJUSTMENT, description=note)
        )
    except LedgerError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)
    click.echo(f"PASS Credited {format_money(cents)}; new balance {format_money(txn.balance_after_cents)}")


# =============================================================================
# ORDER COMMANDS
# =============================================================================

@click.group('orders')
def orders_group():
    """Order acceptance and readiness sweep."""


@orders_group.command('accept')
@click.argument('order_number')
@click.option('--minutes', type=int, required=True, help='Minutes until ready')
@with_appcontext
def accept_order_cli(order_number, minutes):
    """Accept a placed order."""
    try:
        rows = readiness_service.accept_order(order_number, minutes)
    except LedgerError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)
    click.echo(f"PASS {order_number} accepted; ready at {rows[0].to_dict()['ready_estimate_at']}")


@orders_group.command('sweep-ready')
@click.option('--loop', is_flag=True, help='Keep sweeping at a fixed interval')
@click.option('--interval', type=int, help='Seconds between sweeps (default READY_SWEEP_INTERVAL_SECONDS)')
@with_appcontext
def sweep_ready(loop, interval):
    """Transition due orders to READY."""
    if loop:
        click.echo("RUN  Readiness sweeper started (Ctrl+C to stop)")
        try:
            readiness_service.run_sweeper(interval_seconds=interval)
        except KeyboardInterrupt:
            click.echo("STOP Readiness sweeper stopped")
        return

    ready = readiness_service.sweep_ready_orders()
    if not ready:
        click.echo("No orders due.")
        return
    for order_number in ready:
        click.echo(f"READY {order_number}")


# =============================================================================
# LOYALTY COMMANDS
# =============================================================================

@click.group('loyalty')
def loyalty_group():
    """Loyalty redemption."""


@loyalty_group.command('redeem')
@click.argument('customer_id', type=int)
@with_appcontext
def redeem_loyalty(customer_id):
    """Redeem all spendable points for a customer."""
    try:
        result = loyalty_service.redeem_all(customer_id)
    except LedgerError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)
    click.echo(
        f"PASS Redeemed {result.points_redeemed} points for {format_money(result.wallet_amount_cents)}; "
        f"wallet now {format_money(result.new_balance_cents)}"
    )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(settings_group)
    app.cli.add_command(customers_group)
    app.cli.add_command(wallet_group)
    app.cli.add_command(orders_group)
    app.cli.add_command(loyalty_group)
