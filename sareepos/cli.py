# Overview: Flask CLI command groups for bootstrap and inspection.

# sareepos/cli.py
# Commands Legend:
# Prereqs:
# - Activate your virtualenv and `pip install -e .`
# - Set FLASK_APP (PowerShell: $env:FLASK_APP="sareepos:create_app").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Stock:
# - python -m flask stock seed
#   Add a handful of sample sarees (skips if stock already exists).
# - python -m flask stock list [--low]
#   Print stock codes, names and quantities.
#
# Billing:
# - python -m flask billing list --limit 20
#   Print the most recent purchases.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Purchase, StockItem
from .money import from_cents
from .services import stock_service


SAMPLE_STOCK = [
    {"itemName": "Kanjivaram Silk Saree", "category": "Silk", "color": "Maroon",
     "quantity": 12, "unitPrice": 4800, "sellingPrice": 6500, "supplier": "Sri Murugan Silks"},
    {"itemName": "Banarasi Georgette Saree", "category": "Georgette", "color": "Royal Blue",
     "quantity": 8, "unitPrice": 3200, "sellingPrice": 4400, "supplier": "Varanasi Weavers"},
    {"itemName": "Chanderi Cotton Saree", "category": "Cotton", "color": "Mint Green",
     "quantity": 20, "unitPrice": 900, "sellingPrice": 1350, "supplier": "MP Handloom"},
    {"itemName": "Mysore Crepe Saree", "category": "Crepe", "color": "Mustard",
     "quantity": 5, "unitPrice": 2100, "sellingPrice": 2900, "supplier": "KSIC Outlet"},
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables."""
    db.create_all()
    click.echo("PASS Tables created.")


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


@click.group('stock')
def stock_group():
    """Stock inspection and sample data."""


@stock_group.command('seed')
@with_appcontext
def seed_stock():
    """Add sample saree stock when the stock table is empty."""
    if db.session.query(StockItem.id).first() is not None:
        click.echo("SKIP  Stock already present.")
        return
    for payload in SAMPLE_STOCK:
        stock = stock_service.create_stock(dict(payload))
        click.echo(f"ADD   {stock.stock_code}  {stock.item_name} x{stock.quantity}")


@stock_group.command('list')
@click.option('--low', is_flag=True, help='Only items at or below LOW_STOCK_THRESHOLD')
@with_appcontext
def list_stock(low):
    q = db.session.query(StockItem)
    if low:
        q = q.filter(StockItem.quantity <= current_app.config["LOW_STOCK_THRESHOLD"])
    stocks = q.order_by(StockItem.stock_code).all()

    click.echo("\n" + "=" * 80)
    click.echo(f"{'CODE':<10} {'NAME':<35} {'CATEGORY':<15} {'QTY':>6} {'PRICE':>10}")
    click.echo("=" * 80)
    for s in stocks:
        click.echo(f"{s.stock_code:<10} {s.item_name[:35]:<35} {s.category[:15]:<15} "
                   f"{s.quantity:>6} {from_cents(s.unit_price_cents):>10.2f}")
    click.echo("=" * 80 + "\n")


@click.group('billing')
def billing_group():
    """Purchase history inspection."""


@billing_group.command('list')
@click.option('--limit', type=int, default=20, show_default=True)
@with_appcontext
def list_purchases(limit):
    purchases = (
        db.session.query(Purchase)
        .order_by(Purchase.created_at.desc())
        .limit(limit)
        .all()
    )
    click.echo("\n" + "=" * 90)
    click.echo(f"{'INVOICE':<20} {'CUSTOMER':<30} {'METHOD':<8} {'TOTAL':>12} {'CREATED':<20}")
    click.echo("=" * 90)
    for p in purchases:
        click.echo(f"{p.invoice_number:<20} {p.customer_name[:30]:<30} {p.payment_method:<8} "
                   f"{from_cents(p.total_amount_cents):>12.2f} {str(p.created_at)[:19]:<20}")
    click.echo("=" * 90 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(billing_group)
