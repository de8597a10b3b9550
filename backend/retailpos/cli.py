# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/retailpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--tenant "Demo Store"] [--location "Main Branch"]
#   Idempotent bootstrap: demo tenant, first location and a store admin.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Tenant management:
# - python -m flask tenants list
# - python -m flask tenants create --name "Acme Shoes" [--status active]
#
# Users:
# - python -m flask users list [--tenant-id 1]
# - python -m flask users create-super-admin --email root@retailpos.local --password "Password123"
#   Bootstrap the first super admin (no tenant binding).

import click
from flask.cli import with_appcontext

from .errors import ServiceError
from .extensions import db
from .models import Location, Tenant, User, ROLE_STORE_ADMIN, ROLE_SUPER_ADMIN, SUBSCRIPTION_STATUSES
from .services.auth_service import create_user
from .services import tenant_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--tenant', 'tenant_name', default='Demo Store', help='Tenant name')
@click.option('--location', 'location_name', default='Main Branch', help='First location name')
@click.option('--admin-email', default='admin@retailpos.local', help='Store admin email')
@click.option('--admin-password', default='Password123', help='Store admin password')
@with_appcontext
def init_system(tenant_name, location_name, admin_email, admin_password):
    """
    Create tables plus a demo tenant, its first location and a store admin.

    Safe to re-run: existing rows are reused.
    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing retailpos...")
    db.create_all()

    tenant = db.session.query(Tenant).filter_by(name=tenant_name).first()
    if not tenant:
        tenant = Tenant(name=tenant_name, subscription_status="active")
        db.session.add(tenant)
        db.session.commit()
        click.echo(f"PASS Created tenant: {tenant.name} (ID: {tenant.id})")
    else:
        click.echo(f"PASS Using existing tenant: {tenant.name} (ID: {tenant.id})")

    location = db.session.query(Location).filter_by(tenant_id=tenant.id, name=location_name).first()
    if not location:
        location = Location(tenant_id=tenant.id, name=location_name)
        db.session.add(location)
        db.session.commit()
        click.echo(f"PASS Created location: {location.name} (ID: {location.id})")
    else:
        click.echo(f"PASS Using existing location: {location.name} (ID: {location.id})")

    if db.session.query(User).filter_by(email=admin_email.lower()).first():
        click.echo(f"WARN  User '{admin_email}' already exists, skipping...")
    else:
        try:
            create_user(admin_email, admin_password, ROLE_STORE_ADMIN, tenant_id=tenant.id, location_id=location.id)
            click.echo(f"PASS Created store admin: {admin_email}")
        except ServiceError as e:
            click.echo(f"FAIL Failed to create store admin: {e.message}")

    click.echo("\nDONE retailpos initialized.")
    click.echo("Create a super admin with: python -m flask users create-super-admin")


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


@click.group('tenants')
def tenants_group():
    """Tenant management commands."""


@tenants_group.command('list')
@with_appcontext
def list_tenants():
    """List all tenants."""
    tenants = tenant_service.list_tenants()

    if not tenants:
        click.echo("No tenants found.")
        return

    click.echo("\n" + "="*72)
    click.echo(f"{'ID':<5} {'Name':<30} {'Status':<12} {'Locations':<10} {'Users'}")
    click.echo("="*72)

    for tenant in tenants:
        location_count = db.session.query(Location).filter_by(tenant_id=tenant.id).count()
        user_count = db.session.query(User).filter_by(tenant_id=tenant.id).count()
        click.echo(f"{tenant.id:<5} {tenant.name:<30} {tenant.subscription_status:<12} {location_count:<10} {user_count}")

    click.echo("="*72 + "\n")


@tenants_group.command('create')
@click.option('--name', required=True, help='Tenant name')
@click.option('--status', type=click.Choice(SUBSCRIPTION_STATUSES), default='trial', help='Subscription status')
@with_appcontext
def create_tenant(name, status):
    """Create a new tenant."""
    try:
        tenant = tenant_service.create_tenant({"name": name, "subscription_status": status})
    except ServiceError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Created tenant: {tenant.name} (ID: {tenant.id})")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@click.option('--tenant-id', type=int, default=None, help='Filter by tenant')
@with_appcontext
def list_users(tenant_id):
    """List users with role and active status."""
    q = db.session.query(User)
    if tenant_id is not None:
        q = q.filter_by(tenant_id=tenant_id)
    users = q.order_by(User.email.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Email':<35} {'Role':<15} {'Tenant':<8} {'Location':<9} {'Active'}")
    click.echo("="*90)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(
            f"{user.id:<5} {user.email:<35} {user.role:<15} "
            f"{user.tenant_id or '-':<8} {user.location_id or '-':<9} {active_str}"
        )
    click.echo("="*90 + "\n")


@users_group.command('create-super-admin')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_super_admin(email, password):
    """
    Create a super admin (cross-tenant operator, no tenant binding).

    Super admins are never created over HTTP.
    """
    try:
        user = create_user(email, password, ROLE_SUPER_ADMIN)
    except ServiceError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Created super admin: {user.email} (ID: {user.id})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(tenants_group)
    app.cli.add_command(users_group)
