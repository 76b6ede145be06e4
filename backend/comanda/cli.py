# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/comanda/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py.
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Idempotent demo data: one user per role, a small menu and four tables.
#
# Inventory inspection:
# - python -m flask inventory low-stock
#   List stock-managed products at or below their minimum stock.
#
# Register inspection:
# - python -m flask registers sessions --status open --limit 20
#   List recent register sessions with optional filters.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, Category, Product, DiningTable
from .models.registers import SESSION_OPEN, SESSION_CLOSED
from .roles import VALID_ROLES
from .services import inventory_service, register_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create any missing tables. Existing data is left alone."""
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

    click.echo("PASS Database reset complete. Run 'python -m flask system seed-demo' for demo data.")


_DEMO_MENU = [
    # (category, product, price_cents, stock_management, stock_quantity, min_stock)
    ("Drinks", "Soda can", 600, True, 48, 12),
    ("Drinks", "Fresh orange juice", 900, False, 0, None),
    ("Mains", "Grilled chicken plate", 3490, False, 0, None),
    ("Mains", "Cheeseburger", 2990, True, 30, 5),
    ("Desserts", "Chocolate mousse", 1400, True, 10, 3),
]


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """
    Create demo users, menu and tables. Safe to run repeatedly.

    Users: <role>@comanda.local for every role.
    """
    created = {"users": 0, "categories": 0, "products": 0, "tables": 0}

    for role in VALID_ROLES:
        email = f"{role}@comanda.local"
        if db.session.query(User).filter_by(email=email).first() is None:
            db.session.add(User(name=role.title(), email=email, role=role, is_active=True))
            created["users"] += 1

    categories = {}
    for sort_order, name in enumerate(dict.fromkeys(row[0] for row in _DEMO_MENU)):
        category = db.session.query(Category).filter_by(name=name).first()
        if category is None:
            category = Category(name=name, sort_order=sort_order)
            db.session.add(category)
            db.session.flush()
            created["categories"] += 1
        categories[name] = category

    for category_name, name, price_cents, managed, quantity, min_stock in _DEMO_MENU:
        if db.session.query(Product).filter_by(name=name).first() is None:
            db.session.add(Product(
                category_id=categories[category_name].id,
                name=name,
                price_cents=price_cents,
                stock_management=managed,
                stock_quantity=quantity,
                min_stock=min_stock,
            ))
            created["products"] += 1

    for number in range(1, 5):
        if db.session.query(DiningTable).filter_by(number=number).first() is None:
            db.session.add(DiningTable(number=number, seats=4))
            created["tables"] += 1

    db.session.commit()
    summary = ", ".join(f"{count} {label}" for label, count in created.items())
    click.echo(f"PASS Demo data ready ({summary} created)")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('low-stock')
@with_appcontext
def low_stock_cli():
    """List stock-managed products at or below their minimum stock."""
    products = inventory_service.get_low_stock_products()

    if not products:
        click.echo("No products below minimum stock.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Product':<35} {'Available':<10} {'Reserved':<10} {'Minimum':<10}")
    click.echo("="*80)

    for product in products:
        click.echo(f"{product.id:<5} {product.name[:34]:<35} {product.stock_quantity:<10} "
                   f"{product.stock_reserved:<10} {product.min_stock:<10}")

    click.echo("="*80 + "\n")


@click.group('registers')
def registers_group():
    """Register inspection commands."""


@registers_group.command('sessions')
@click.option('--status', type=click.Choice([SESSION_OPEN, SESSION_CLOSED]), help='Filter by status')
@click.option('--limit', type=int, default=20, help='Max sessions to show')
@with_appcontext
def list_sessions_cli(status, limit):
    """
    List register sessions.

    Example:
        flask registers sessions
        flask registers sessions --status open
    """
    sessions = register_service.list_register_sessions(status=status, limit=limit)

    if not sessions:
        click.echo("No sessions found.")
        return

    click.echo("\n" + "="*110)
    click.echo(f"{'ID':<5} {'User':<15} {'Status':<8} {'Opened':<20} {'Expected':<12} {'Difference':<12} {'Notes'}")
    click.echo("="*110)

    for session in sessions:
        user = db.session.get(User, session.user_id) if session.user_id else None
        username = user.name if user else "Unknown"

        expected_str = f"{session.expected_closing_amount_cents / 100:.2f}"
        difference_str = "-"
        if session.difference_cents is not None:
            difference_str = f"{session.difference_cents / 100:+.2f}"

        notes = session.notes[:30] if session.notes else "-"

        click.echo(f"{session.id:<5} {username[:14]:<15} {session.status:<8} "
                   f"{str(session.opened_at)[:19]:<20} {expected_str:<12} {difference_str:<12} {notes}")

    click.echo("="*110 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(registers_group)
