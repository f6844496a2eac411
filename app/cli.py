"""CLI tools for complaint portal administration."""

import click
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from app.core.security import create_session_token
from app.db.enums import Role
from app.db.models import User
from app.db.session import SessionLocal


@click.group()
def cli():
    """Complaint portal CLI tools."""
    pass


@cli.command()
@click.option("--email", required=True, help="Login email")
@click.option("--name", "display_name", required=True, help="Display name")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=Role.STUDENT.value,
    show_default=True,
    help="Portal role",
)
def create_user(email: str, display_name: str, role: str):
    """
    Create a portal account.

    Example:
        python -m app.cli create-user --email "lecturer@uni.edu" --name "Dr. Lee" --role lecturer
    """
    db = SessionLocal()
    try:
        email = email.lower().strip()
        existing = db.scalars(select(User).where(User.email == email)).first()
        if existing:
            click.echo(f"❌ User already exists: {email}")
            raise SystemExit(1)

        user = User(email=email, display_name=display_name.strip(), role=role)
        db.add(user)
        db.commit()

        click.echo(f"✓ Created {role}: {email}")
        click.echo(f"  ID: {user.id}")
    except SQLAlchemyError as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email to revoke sessions for")
def revoke_sessions(email: str):
    """
    Revoke all sessions for a user by bumping their token_version.

    Example:
        python -m app.cli revoke-sessions --email "user@uni.edu"
    """
    db = SessionLocal()
    try:
        user = db.scalars(select(User).where(User.email == email.lower())).first()
        if not user:
            click.echo(f"❌ User not found: {email}")
            raise SystemExit(1)

        old_version = user.token_version
        user.token_version += 1
        db.commit()

        click.echo(f"✓ Revoked all sessions for {email}")
        click.echo(f"  Token version: {old_version} → {user.token_version}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User to mint a session token for")
def issue_token(email: str):
    """
    Print a session token for a user (set it as the session cookie).

    Example:
        python -m app.cli issue-token --email "student@uni.edu"
    """
    db = SessionLocal()
    try:
        user = db.scalars(select(User).where(User.email == email.lower())).first()
        if not user or not user.is_active:
            click.echo(f"❌ Active user not found: {email}")
            raise SystemExit(1)
        click.echo(create_session_token(user.id, user.role, user.token_version))
    finally:
        db.close()


@cli.command()
@click.option("--batch-limit", type=int, default=None, help="Max complaints per rule")
def run_escalations(batch_limit: int | None):
    """
    Run the auto-escalation sweep once.

    Example:
        python -m app.cli run-escalations
    """
    from app.services import escalation_service

    db = SessionLocal()
    try:
        result = escalation_service.run_auto_escalation(db, batch_limit=batch_limit)
        click.echo(
            f"✓ Checked {result['rules_checked']} rule(s): "
            f"{result['escalated']} escalated, {result['failed']} failed"
        )
        for complaint_id in result["escalated_ids"]:
            click.echo(f"  ↑ {complaint_id}")
    finally:
        db.close()


@cli.command()
def verify_assignments():
    """
    Check that every complaint's assigned_to matches its assignment history.

    Exits non-zero when any complaint disagrees.

    Example:
        python -m app.cli verify-assignments
    """
    from app.services import history_service

    db = SessionLocal()
    try:
        broken = history_service.find_inconsistent_assignments(db)
        if not broken:
            click.echo("✓ All complaint assignments match their history")
            return
        for complaint in broken:
            expected = history_service.current_assignee_from_history(db, complaint.id)
            click.echo(
                f"❌ {complaint.id}: assigned_to={complaint.assigned_to} history={expected}"
            )
        raise SystemExit(1)
    finally:
        db.close()


if __name__ == "__main__":
    cli()
