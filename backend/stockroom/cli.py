# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stockroom/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to stockroom (PowerShell: $env:FLASK_APP="stockroom").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system cleanup-sessions --retention-days 30
#   Delete expired or revoked session tokens older than the retention window.
#
# Accounts:
# - python -m flask users list
#   List all accounts with document counts.
# - python -m flask users create --email owner@example.com --password "secret1"
#   Create an account (prompts if options are omitted).
# - python -m flask users deactivate owner@example.com
#   Block sign-in for an account and revoke its sessions.
#
# Inventory inspection:
# - python -m flask inventory summary owner@example.com
#   Print the dashboard figures for one account.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, SessionToken, StoredDocument
from .services import auth_service, session_service
from .services.auth_service import EmailInUseError, EmailValidationError, PasswordValidationError
from .services.document_store import SqlDocumentStore, COLLECTIONS
from .services.identity_service import Principal
from .services.inventory_service import InventoryWorkspace
from .services.metrics_service import dashboard_summary
from .time_utils import utcnow


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create any missing tables."""
    db.create_all()
    click.echo("PASS Tables ready.")


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


@system_group.command('cleanup-sessions')
@click.option('--retention-days', type=int, default=30, show_default=True,
              help='Keep dead sessions newer than this many days')
@with_appcontext
def cleanup_sessions(retention_days):
    """Delete expired and revoked session tokens."""
    deleted = session_service.cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"PASS Deleted {deleted} session token(s).")


@click.group('users')
def users_group():
    """Account management commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user_cli(email, password):
    """Create an account."""
    try:
        user = auth_service.create_user(email, password)
    except (EmailValidationError, PasswordValidationError, EmailInUseError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created {user.email} (uid: {user.uid})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all accounts with how many documents each owns."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Email':<35} {'UID':<34} {'Active':<8} {'Documents'}")
    click.echo("="*100)

    for user in users:
        doc_count = db.session.query(StoredDocument).filter_by(owner_id=user.uid).count()
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.email:<35} {user.uid:<34} {active_str:<8} {doc_count}")

    click.echo("="*100 + "\n")


@users_group.command('deactivate')
@click.argument('email')
@with_appcontext
def deactivate_user(email):
    """Block sign-in for an account and revoke its sessions."""
    user = auth_service.find_user_by_email(email)
    if not user:
        click.echo(f"FAIL No account for {email}")
        raise SystemExit(1)

    now = utcnow()
    user.is_active = False
    revoked = 0
    for session in db.session.query(SessionToken).filter_by(user_id=user.id, is_revoked=False):
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = "Account deactivated"
        revoked += 1
    db.session.commit()

    click.echo(f"PASS Deactivated {user.email}; revoked {revoked} session(s).")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('summary')
@click.argument('email')
@with_appcontext
def inventory_summary(email):
    """Print the dashboard figures for one account."""
    user = auth_service.find_user_by_email(email)
    if not user:
        click.echo(f"FAIL No account for {email}")
        raise SystemExit(1)

    workspace = InventoryWorkspace(SqlDocumentStore())
    workspace.activate(Principal.from_user(user))
    summary = dashboard_summary(workspace.products, workspace.sales)

    click.echo(f"\nAccount: {user.email}")
    click.echo("-"*40)
    for collection in COLLECTIONS:
        click.echo(f"{collection:<16} {len(getattr(workspace, collection))}")
    click.echo("-"*40)
    click.echo(f"{'Total revenue':<16} {summary['total_revenue']:.2f}")
    click.echo(f"{'Orders today':<16} {summary['today_orders']}")
    click.echo(f"{'Low stock items':<16} {summary['low_stock_count']}")
    click.echo("")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(inventory_group)
