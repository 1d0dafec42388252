"""Click commands for operator maintenance tasks."""

from __future__ import annotations

import sys

import click


def get_app_context():
    """Get Flask application context."""
    from app import create_app
    app = create_app()
    return app.app_context()


# ---------------------------------------------------------------------------
# Click CLI Group
# ---------------------------------------------------------------------------

@click.group()
def cli():
    """Maintenance tools for the marketplace backend."""
    pass


# ---------------------------------------------------------------------------
# User roles
# ---------------------------------------------------------------------------

@cli.command("list-users")
def list_users():
    """List all users with their role and flags."""
    with get_app_context():
        from models import User

        users = User.query.order_by(User.id).all()
        if not users:
            click.echo("No users found.")
            return
        click.echo(f"Total users: {len(users)}")
        for index, user in enumerate(users, start=1):
            click.echo(
                f"  {index}. {user.email}  username={user.username}  "
                f"role={user.role or '-'}  seller={bool(user.is_seller)}  "
                f"verified={bool(user.is_verified)}"
            )


@cli.command("make-admin")
@click.argument("identifier")
def make_admin(identifier: str):
    """Grant admin role and all admin permissions to IDENTIFIER (email or username)."""
    with get_app_context():
        from maintenance.roles import make_admin as grant_admin

        user = grant_admin(identifier)
        if user is None:
            click.echo(f"User '{identifier}' not found.", err=True)
            sys.exit(1)
        click.echo(f"{user.email} is now an admin ({len(user.permissions)} permissions).")


@cli.command("check-role")
@click.argument("email")
def check_role(email: str):
    """Make EMAIL a freelancer seller if it is neither yet."""
    with get_app_context():
        from maintenance.roles import fix_seller_role

        user, changed = fix_seller_role(email)
        if user is None:
            click.echo(f"User with email '{email}' not found.", err=True)
            sys.exit(1)
        if changed:
            click.echo(f"Updated {email}: role=freelancer, seller=True")
        else:
            click.echo(f"{email} already has role={user.role}, seller={bool(user.is_seller)}")


@cli.command("setup-roles")
def setup_roles():
    """Assign missing roles, create the initial admin and print role statistics."""
    with get_app_context():
        from maintenance.roles import assign_missing_roles, create_initial_admin, role_statistics

        updated = assign_missing_roles()
        click.echo(f"Assigned roles to {updated} user(s).")

        admin, generated = create_initial_admin()
        if generated:
            click.echo(
                f"Created admin {admin.email}. Initial password: {generated} "
                "(change immediately after first login)"
            )
        else:
            click.echo(f"Admin account: {admin.email}")

        click.echo("Role statistics:")
        for role, count in role_statistics():
            click.echo(f"  {role or 'none'}: {count}")


@cli.command("verify-all-users")
def verify_all_users():
    """Mark every unverified user as verified."""
    with get_app_context():
        from maintenance.roles import verify_all_users as verify

        count = verify()
        click.echo(f"Verified {count} user(s).")


# ---------------------------------------------------------------------------
# Promotions
# ---------------------------------------------------------------------------

@cli.command("expire-promotions")
def expire_promotions():
    """Mark ended promotions expired and clear gig promotion flags."""
    with get_app_context():
        from services.promotions import expire_stale_promotions

        count = expire_stale_promotions()
        click.echo(f"Expired {count} promotion(s).")


@cli.command("backfill-promotions")
def backfill_promotions():
    """Move legacy promotion records into the purchase table."""
    with get_app_context():
        from services.promotions import backfill_legacy_promotions

        migrated, skipped = backfill_legacy_promotions()
        click.echo(f"Migrated {migrated} legacy promotion(s), skipped {skipped}.")
