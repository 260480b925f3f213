"""Customer portal CLI tool (portalctl)."""

import typer

from portal import models  # noqa: F401  (registers tables on Base.metadata)
from portal.core.config import settings
from portal.core.exceptions import UserAlreadyExistsError
from portal.db.base import Base
from portal.db.session import SessionLocal, engine
from portal.services.auth_service import AuthService
from portal.services.file_service import FileService
from portal.services.session_service import SessionManager

app = typer.Typer(name="portalctl", help="Customer portal CLI")
db_app = typer.Typer(help="Database management commands")
storage_app = typer.Typer(help="Object storage commands")
sessions_app = typer.Typer(help="Session maintenance commands")
app.add_typer(db_app, name="db")
app.add_typer(storage_app, name="storage")
app.add_typer(sessions_app, name="sessions")


@db_app.command("init")
def db_init():
    """Create all tables that don't exist yet."""
    Base.metadata.create_all(bind=engine)
    typer.echo("Tables created (or already present)")


@db_app.command("reset")
def db_reset(yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation")):
    """Drop and recreate every table (DANGER)."""
    if not yes and not typer.confirm("This will DROP all portal tables. Continue?"):
        raise typer.Abort()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    typer.echo("Database reset")


@db_app.command("seed")
def db_seed(
    email: str = typer.Option(None, help="Demo user email"),
    password: str = typer.Option(None, help="Demo user password"),
):
    """Create the demo user if it isn't there yet."""
    email = email or settings.SEED_USER_EMAIL
    password = password or settings.SEED_USER_PASSWORD

    db = SessionLocal()
    try:
        user = AuthService(db).register(
            email=email, password=password, first_name="Demo", last_name="User"
        )
        typer.echo(f"Created demo user {user.email} (id={user.id})")
    except UserAlreadyExistsError:
        typer.echo(f"Demo user {email} already exists, skipping")
    finally:
        db.close()


@storage_app.command("init")
def storage_init():
    """Create the avatar and document buckets in MinIO."""
    db = SessionLocal()
    try:
        FileService(db).ensure_buckets()
    finally:
        db.close()
    typer.echo(f"Buckets ready: {settings.AVATAR_BUCKET}, {settings.DOCUMENT_BUCKET}")


@sessions_app.command("purge")
def sessions_purge():
    """Delete expired sessions."""
    db = SessionLocal()
    try:
        purged = SessionManager(db).purge_expired()
    finally:
        db.close()
    typer.echo(f"Purged {purged} expired session(s)")


if __name__ == "__main__":
    app()
