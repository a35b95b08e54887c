# Overview: Flask CLI command groups for bootstrap, user management, and statistics repair.

# backend/weblarek/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User bootstrap:
# - python -m flask users create --email admin@weblarek.local --password "secret1" --name Admin --admin
#   Create a user (prompts if options are omitted). --admin adds the admin role.
# - python -m flask users grant-role admin@weblarek.local admin
#   Add a role to an existing user.
# - python -m flask users list
#   List all users with roles and order statistics.
#
# Statistics:
# - python -m flask stats recompute [--user-id 1]
#   Re-derive order statistics for one user or for everyone.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import ApiError
from .models import User, ROLES, ROLE_ADMIN, ROLE_CUSTOMER
from .services import auth_service, stats_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation prompt')
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

    click.echo("PASS Database reset complete. Run 'python -m flask users create --admin' to add an administrator.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--name', default=None, help='Display name')
@click.option('--admin', 'is_admin', is_flag=True, help='Grant the admin role')
@with_appcontext
def create_user_cli(email, password, name, is_admin):
    """
    Create a new user.

    Password must be at least 6 characters.
    """
    roles = [ROLE_CUSTOMER, ROLE_ADMIN] if is_admin else [ROLE_CUSTOMER]
    try:
        user = auth_service.register_user(email=email, password=password, name=name, roles=roles)
    except ApiError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Created user: {user.email} (ID: {user.id}) with roles {', '.join(user.roles)}")


@users_group.command('grant-role')
@click.argument('email')
@click.argument('role', type=click.Choice(list(ROLES)))
@with_appcontext
def grant_role_cli(email, role):
    """Add ROLE to the user with EMAIL."""
    user = auth_service.find_by_email(email)
    if not user:
        raise click.ClickException(f"User {email} not found")

    auth_service.assign_role(user, role)
    click.echo(f"PASS {user.email} now has roles {', '.join(user.roles)}")


@users_group.command('list')
@with_appcontext
def list_users_cli():
    """List all users with roles and order statistics."""
    users = db.session.query(User).order_by(User.id).all()
    if not users:
        click.echo("No users found")
        return

    click.echo(f"\n{'ID':<5} {'Email':<32} {'Roles':<16} {'Orders':>6} {'Total':>10}")
    click.echo("-" * 73)
    for user in users:
        click.echo(
            f"{user.id:<5} {user.email:<32} {','.join(user.roles):<16} "
            f"{user.order_count:>6} {user.total_amount:>10}"
        )


@click.group('stats')
def stats_group():
    """Denormalized statistics maintenance."""


@stats_group.command('recompute')
@click.option('--user-id', type=int, default=None, help='Only this user')
@with_appcontext
def recompute_stats_cli(user_id):
    """Re-derive order statistics from the orders table."""
    if user_id is None:
        count = stats_service.recompute_all()
        click.echo(f"PASS Recomputed statistics for {count} users")
        return

    user = stats_service.recompute_user_stats(user_id)
    if user is None:
        raise click.ClickException(f"User ID {user_id} not found")
    db.session.commit()
    click.echo(
        f"PASS User {user.id}: {user.order_count} orders, total {user.total_amount}"
    )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(stats_group)
