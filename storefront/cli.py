# storefront/cli.py
import os

import click
from flask.cli import with_appcontext
import pandas as pd
from werkzeug.security import generate_password_hash

from .extensions import db
from .model import Product, User
from .services import get_services

PRODUCT_COLUMNS = ["Name", "Description", "Price", "Image URL", "Category"]


def _read_table(path):
    if os.path.splitext(path)[1].lower() in {".xlsx", ".xls"}:
        return pd.read_excel(path)
    return pd.read_csv(path)

def _cell(row, column):
    value = row.get(column)
    return None if value is None or pd.isna(value) else value


@click.command("create-admin")
@with_appcontext
@click.option("--email", required=True)
@click.option("--password", required=True)
@click.option("--name", required=True)
def create_admin(email, password, name):
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        click.echo("Email already exists"); return
    u = User(email=email, name=name, password_hash=generate_password_hash(password), role="admin")
    db.session.add(u); db.session.commit()
    click.echo(f"Admin created: {u.id} {u.email}")


@click.command("sync-payments")
@with_appcontext
def sync_payments():
    """Run one payment reconciliation pass now."""
    report = get_services().scheduler.run_once()
    click.echo(
        f"expired={report.expired} synced={report.succeeded} "
        f"failed={report.failed} skipped={report.skipped}"
    )


@click.command("import-products")
@with_appcontext
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def import_products(path):
    """Load products from a CSV or Excel sheet."""
    df = _read_table(path)
    # Clean column names (remove extra spaces)
    df.columns = df.columns.str.strip()
    missing = [c for c in ("Name", "Price") if c not in df.columns]
    if missing:
        raise click.ClickException(f"missing columns: {', '.join(missing)}")

    products = get_services().products
    for _, row in df.iterrows():
        products.create_product(
            name=_cell(row, "Name"),
            description=_cell(row, "Description"),
            category=_cell(row, "Category"),
            price=_cell(row, "Price"),
            image_url=_cell(row, "Image URL"),
        )
    click.echo(f"{len(df)} products imported from {path}")


@click.command("export-products")
@with_appcontext
@click.argument("path", type=click.Path(dir_okay=False))
def export_products(path):
    """Write every product to a CSV or Excel sheet."""
    rows = [
        {
            "ID": p.id,
            "Name": p.name,
            "Description": p.description,
            "Price": float(p.price or 0),
            "Image URL": p.image_url,
            "Category": p.category.name if p.category else None,
        }
        for p in Product.query.order_by(Product.id.asc()).all()
    ]
    df = pd.DataFrame(rows, columns=["ID", *PRODUCT_COLUMNS])
    if os.path.splitext(path)[1].lower() in {".xlsx", ".xls"}:
        df.to_excel(path, index=False)
    else:
        df.to_csv(path, index=False)
    click.echo(f"{len(rows)} products exported to {path}")


def register_cli(app):
    app.cli.add_command(create_admin)
    app.cli.add_command(sync_payments)
    app.cli.add_command(import_products)
    app.cli.add_command(export_products)
