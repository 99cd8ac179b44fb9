# Overview: Flask CLI commands for bootstrap and inspection.

# backend/salestock/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# - python -m flask init-db
#   Create all tables (idempotent).
# - python -m flask users create --username admin --role admin
#   Create a user (prompts for the password).
# - python -m flask users list
#   List users with role and active status.
# - python -m flask settings show
#   Print the effective exchange rate, display currency and tax rate.
# - python -m flask db upgrade
#   Flask-Migrate commands are available as usual.

import click
from flask.cli import with_appcontext

from .errors import SaleError
from .extensions import db
from .models import User
from .models.auth import ROLES
from .services.auth_service import create_user
from .services.settings_service import get_company_settings, get_currency_settings


@click.command('init-db')
@with_appcontext
def init_db():
    """Create all database tables."""
    from . import models  # noqa: F401

    db.create_all()
    click.echo("PASS Database tables created")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--full-name', default=None, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, full_name, password, role):
    """Create a new user. Passwords need at least 8 characters."""
    try:
        user = create_user(username, password, role=role, full_name=full_name)
    except SaleError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 72)
    click.echo(f"{'ID':<5} {'Username':<20} {'Full name':<25} {'Role':<8} {'Active'}")
    click.echo("=" * 72)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {(user.full_name or ''):<25} {user.role:<8} {active_str}")
    click.echo("=" * 72 + "\n")


@click.group('settings')
def settings_group():
    """Company settings inspection."""


@settings_group.command('show')
@with_appcontext
def show_settings():
    """Print the settings every sale and report is computed with."""
    try:
        current = get_currency_settings()
    except SaleError as e:
        raise click.ClickException(e.message)

    row = get_company_settings()
    source = "company_settings" if row is not None else "config"
    click.echo(f"Company:          {row.company_name if row else '-'}")
    click.echo(f"USD/HTG rate:     {current.usd_htg_rate}")
    click.echo(f"Display currency: {current.display_currency}")
    click.echo(f"TVA rate:         {current.tva_rate}%")
    click.echo(f"Source:           {source}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(init_db)
    app.cli.add_command(users_group)
    app.cli.add_command(settings_group)
