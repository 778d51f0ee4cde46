# Overview: Flask CLI command groups for bootstrap, user management, day close and maintenance.

# backend/coworkpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, the default super admin and the default café menu.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --username caisse1 --password "secret1" --role cashier
#
# Statistics:
# - python -m flask stats close-day [--date 2024-03-01]
#   Re-derive one day's statistics from its transactions (defaults to today, UTC).
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --retention-days 30

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .permissions import Role, ROLE_VALUES
from .services import products_service, session_service, stats_service, user_service
from .services.auth_service import PasswordValidationError
from .validation import ConflictError
from .time_utils import utcnow, parse_day


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the system: schema, default super admin and default products.

    Creates (only when missing):
    - all tables
    - user "superadmin" with role super_admin, password from
      DEFAULT_SUPERADMIN_PASSWORD
    - the default café menu when the catalogue is empty

    SECURITY: Change the super admin password immediately in production!
    """
    click.echo("START Initializing coworking POS...")

    db.create_all()
    click.echo("PASS Tables ready")

    admin = db.session.query(User).filter_by(username="superadmin").first()
    if admin is None:
        user_service.create_user(
            {"username": "superadmin", "role": Role.SUPER_ADMIN.value, "full_name": "Super Administrateur"},
            current_app.config["DEFAULT_SUPERADMIN_PASSWORD"],
            actor=None,
        )
        click.echo("PASS Created user: superadmin (super_admin)")
    else:
        click.echo("PASS Using existing user: superadmin")

    added = products_service.seed_default_products()
    if added:
        click.echo(f"PASS Created {added} default products")
    else:
        click.echo("PASS Product catalogue already populated")

    click.echo("DONE System initialized")


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


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ROLE_VALUES), prompt=True, help='Role')
@click.option('--full-name', default=None, help='Display name')
@click.option('--email', default=None, help='Email address')
@with_appcontext
def create_user_cli(username, password, role, full_name, email):
    """Create a user (prompts if options are omitted)."""
    try:
        user = user_service.create_user(
            {"username": username, "role": role, "full_name": full_name, "email": email},
            password,
            actor=None,
        )
    except PasswordValidationError as e:
        raise click.ClickException(f"Password validation failed: {e}")
    except ConflictError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {user.username} with role '{user.role}'")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their role and active status."""
    users = user_service.list_users()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Role':<14} {'Active':<8} {'Full name'}")
    click.echo("=" * 80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.role:<14} {active_str:<8} {user.full_name or ''}")

    click.echo("=" * 80 + "\n")


@click.group('stats')
def stats_group():
    """Daily statistics commands."""


@stats_group.command('close-day')
@click.option('--date', 'day_str', default=None, help='Day to close (YYYY-MM-DD, default: today UTC)')
@with_appcontext
def close_day_cli(day_str):
    """Re-derive one day's statistics from its transactions."""
    try:
        day = parse_day(day_str) if day_str else utcnow().date()
    except ValueError:
        raise click.BadParameter("expected YYYY-MM-DD", param_hint="--date")

    row = stats_service.close_day(day)
    click.echo(
        f"PASS Closed {day.isoformat()}: total {row.total_revenue_cents / 100:.2f} DH "
        f"(entries {row.entries_count}, subscriptions {row.subscriptions_count}, café {row.cafe_orders_count})"
    )


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--retention-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(retention_days):
    """Delete expired or revoked sessions older than the retention window."""
    deleted = session_service.cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"Deleted {deleted} sessions older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(stats_group)
    app.cli.add_command(maintenance_group)
