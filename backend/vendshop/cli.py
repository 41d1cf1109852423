# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/vendshop/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create missing tables and the site settings row (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --email admin@growvend.com --password "secret1" --admin
# - python -m flask users credit --email buyer@example.com --amount 25.00
#   Credit a wallet through the ledger (type admin_add).
#
# Catalog:
# - python -m flask products create --name "Dirt Seed" --price 1.50 --category seeds
# - python -m flask products add-stock --product-id 1 --unit CODE-1 --unit CODE-2
#
# Ledger:
# - python -m flask ledger reconcile
#   Compare balances to ledger sums; exits with status 1 when any user is off.

import sys

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User, Product
from .money import format_cents
from .services import auth_service, ledger_service, products_service, settings_service, wallet_service
from .services.auth_service import PasswordValidationError
from .validation import (
    PRODUCT_POLICY,
    ValidationError,
    NotFoundError,
    enforce_rules_product,
    normalize_product_payload,
    validate_payload,
    validate_stock_units,
)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the VendShop database.

    Creates any missing tables and the global settings row. Safe to run
    more than once.
    """
    click.echo("START Initializing VendShop...")

    db.create_all()
    click.echo("PASS Tables ready")

    settings = settings_service.get_settings()
    world = settings.deposit_world or "(not set)"
    click.echo(f"PASS Settings ready (deposit world: {world})")

    admins = ", ".join(current_app.config.get("ADMIN_EMAILS", [])) or "none"
    click.echo(f"\nAccounts registered with these emails become admins: {admins}")
    click.echo("DONE VendShop initialized")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with balance and flags."""
    users = auth_service.list_users()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Email':<32} {'GrowID':<20} {'Balance':<12} {'Admin':<6} {'Banned'}")
    click.echo("="*90)

    for user in users:
        admin_str = "Yes" if user.is_admin else "No"
        banned_str = "Yes" if user.is_banned else "No"
        click.echo(
            f"{user.id:<5} {user.email:<32} {user.grow_id or '-':<20} "
            f"{format_cents(user.balance_cents):<12} {admin_str:<6} {banned_str}"
        )

    click.echo("="*90 + "\n")


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--admin', 'is_admin', is_flag=True, help="Create as administrator")
@with_appcontext
def create_user_cli(email, password, is_admin):
    """
    Create a new user.

    Without --admin the flag follows ADMIN_EMAILS.
    """
    try:
        user = auth_service.create_user(email, password, is_admin=True if is_admin else None)
        role = "admin" if user.is_admin else "user"
        click.echo(f"PASS Created {role}: {user.email} (ID: {user.id})")
        click.echo("SECURITY Password securely hashed with bcrypt")

    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        sys.exit(1)
    except ValidationError as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")
        sys.exit(1)


@users_group.command('credit')
@click.option('--email', required=True, help='Account email')
@click.option('--amount', required=True, type=float, help='Amount to credit, e.g. 25.00')
@with_appcontext
def credit_user(email, amount):
    """Credit a user's wallet (recorded as admin_add)."""
    user = db.session.query(User).filter_by(email=email.strip().lower()).first()
    if not user:
        click.echo(f"FAIL User '{email}' not found")
        sys.exit(1)

    try:
        balance_cents = wallet_service.admin_credit(user.id, amount)
    except (ValidationError, NotFoundError) as e:
        click.echo(f"FAIL {str(e)}")
        sys.exit(1)

    click.echo(f"PASS Credited {email}; balance is now {format_cents(balance_cents)}")


@click.group('products')
def products_group():
    """Catalog commands."""


@products_group.command('create')
@click.option('--name', required=True, help='Product name')
@click.option('--price', required=True, type=float, help='Unit price, e.g. 1.50')
@click.option('--category', default='general', show_default=True, help='Category')
@click.option('--description', default='', help='Description')
@with_appcontext
def create_product_cli(name, price, category, description):
    """Create a product with empty stock."""
    try:
        payload = normalize_product_payload({
            "name": name,
            "price": price,
            "category": category,
            "description": description,
        })
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        click.echo(f"FAIL {str(e)}")
        sys.exit(1)

    product = products_service.create_product(patch=patch)
    click.echo(f"PASS Created product: {product.name} (ID: {product.id}) at {format_cents(product.price_cents)}")


@products_group.command('add-stock')
@click.option('--product-id', required=True, type=int, help='Product ID')
@click.option('--unit', 'units', multiple=True, required=True, help='Stock unit (repeatable)')
@with_appcontext
def add_stock_cli(product_id, units):
    """Append stock units; units already in stock are skipped."""
    try:
        clean = validate_stock_units(list(units))
        product, added = products_service.add_stock(product_id=product_id, units=clean)
    except (ValidationError, NotFoundError) as e:
        click.echo(f"FAIL {str(e)}")
        sys.exit(1)

    skipped = len(clean) - added
    click.echo(f"PASS Added {added} unit(s) to {product.name}; {product.stock_count} in stock")
    if skipped:
        click.echo(f"WARN Skipped {skipped} duplicate unit(s)")


@click.group('ledger')
def ledger_group():
    """Wallet ledger inspection."""


@ledger_group.command('reconcile')
@with_appcontext
def reconcile_cli():
    """
    Compare every balance to the signed sum of its ledger entries.

    Exits with status 1 if any user is unbalanced.
    """
    results = ledger_service.reconcile_all()
    unbalanced = [r for r in results if not r.balanced]

    click.echo(f"Checked {len(results)} user(s)")
    for r in unbalanced:
        click.echo(
            f"FAIL user {r.user_id}: balance {format_cents(r.balance_cents)} "
            f"vs ledger {format_cents(r.ledger_cents)} (diff {r.difference_cents} cents)"
        )

    if unbalanced:
        sys.exit(1)

    click.echo("PASS All balances match the ledger")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(products_group)
    app.cli.add_command(ledger_group)
