"""Click CLI entry point for StudySlot operators."""

from __future__ import annotations

import sys

import click
from sqlalchemy.exc import IntegrityError

from studyslot.config import Settings
from studyslot.db import Database
from studyslot.errors import SchedulingError
from studyslot.logging import configure_logging
from studyslot.models.experiment import ExperimentStatus
from studyslot.models.user import User, UserRole
from studyslot.service import SchedulingService


def _get_db(settings: Settings) -> Database:
    settings.ensure_data_dir()
    db = Database(
        settings.db_path,
        max_retries=settings.store_max_retries,
        retry_base_delay=settings.store_retry_base_delay,
        worker_id=settings.worker_id,
    )
    db.init_schema()
    return db


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """StudySlot: research study scheduling."""
    ctx.ensure_object(dict)
    settings = Settings()
    log_level = "DEBUG" if verbose else settings.log_level
    configure_logging(log_level=log_level, log_format=settings.log_format)
    ctx.obj["settings"] = settings
    ctx.obj["verbose"] = verbose


@cli.command("ls")
@click.option(
    "--status",
    type=click.Choice([s.value for s in ExperimentStatus]),
    default=None,
    help="Filter by status",
)
@click.pass_context
def list_experiments(ctx: click.Context, status: str | None) -> None:
    """List experiments."""
    settings = ctx.obj["settings"]
    db = _get_db(settings)
    try:
        exp_status = ExperimentStatus(status) if status else None
        experiments = db.list_experiments(exp_status)
        if not experiments:
            click.echo("No experiments found.")
            return
        for exp in experiments:
            click.echo(
                f"  [{exp.id}] {exp.status.value:15s} {exp.title} ({len(exp.sessions)} sessions)"
            )
    finally:
        db.close()


@cli.command()
@click.argument("experiment_id")
@click.option("--log", "show_log", is_flag=True, help="Show audit log")
@click.pass_context
def inspect(ctx: click.Context, experiment_id: str, show_log: bool) -> None:
    """Inspect an experiment and its sessions."""
    settings = ctx.obj["settings"]
    db = _get_db(settings)
    try:
        exp = db.get_experiment(experiment_id)
        if exp is None:
            click.echo(f"Experiment {experiment_id} not found.", err=True)
            sys.exit(1)

        click.echo(f"Experiment {exp.id}: {exp.title}")
        click.echo(f"  Status: {exp.status.value}")
        click.echo(f"  Researcher: {exp.researcher}")
        if exp.admin_review:
            click.echo(f"  Reviewed by {exp.admin_review.reviewer}: {exp.admin_review.notes}")

        if show_log:
            click.echo("\nAudit Log:")
            for entry in db.get_log(experiment_id):
                click.echo(f"  [{entry['created_at']}] {entry['event']}: {entry['message']}")
        elif exp.sessions:
            click.echo("\nSessions:")
            for s in exp.sessions:
                active = sum(1 for p in s.participants if p.is_active)
                click.echo(
                    f"  [{s.id}] {s.start_time:%Y-%m-%d %H:%M} "
                    f"{active}/{s.max_participants} {s.location}"
                )
    finally:
        db.close()


@cli.command()
@click.argument("experiment_id")
@click.option("--approve", is_flag=True, help="Approve the experiment")
@click.option("--reject", is_flag=True, help="Reject the experiment")
@click.option("--notes", type=str, default="", help="Review notes")
@click.option("--reviewer", type=str, default="cli", help="Reviewer id recorded on the review")
@click.pass_context
def review(
    ctx: click.Context,
    experiment_id: str,
    approve: bool,
    reject: bool,
    notes: str,
    reviewer: str,
) -> None:
    """Approve or reject an experiment pending review."""
    if not approve and not reject:
        click.echo("Error: use --approve or --reject", err=True)
        sys.exit(1)
    if approve and reject:
        click.echo("Error: cannot both approve and reject", err=True)
        sys.exit(1)

    settings = ctx.obj["settings"]
    db = _get_db(settings)
    try:
        service = SchedulingService(db)
        try:
            if approve:
                service.approve(reviewer, experiment_id, notes)
            else:
                service.reject(reviewer, experiment_id, notes)
        except SchedulingError as exc:
            click.echo(f"Error: {exc.message}", err=True)
            sys.exit(1)
        action = "approved" if approve else "rejected"
        click.echo(f"Experiment {experiment_id} {action}.")
    finally:
        db.close()


@cli.command()
@click.pass_context
def repair(ctx: click.Context) -> None:
    """Move open or in-progress experiments without sessions back to approved."""
    settings = ctx.obj["settings"]
    db = _get_db(settings)
    try:
        repaired = SchedulingService(db).repair_sessionless()
        if not repaired:
            click.echo("Nothing to repair.")
            return
        for experiment_id in repaired:
            click.echo(f"  [{experiment_id}] -> approved")
        click.echo(f"Repaired {len(repaired)} experiments.")
    finally:
        db.close()


@cli.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Verify store and user cache connectivity."""
    from studyslot.cache import create_user_cache

    settings = ctx.obj["settings"]
    db = _get_db(settings)
    try:
        try:
            db_ok = db.check_connection()
        except SchedulingError:
            db_ok = False
    finally:
        db.close()
    cache_ok = create_user_cache(settings).ping()

    backend = "redis" if settings.redis_url else "local"
    click.echo(f"  {'Database':16s} {'OK' if db_ok else '-- unreachable'}")
    click.echo(f"  {'User cache':16s} {'OK' if cache_ok else '-- unreachable'} ({backend})")
    if not (db_ok and cache_ok):
        sys.exit(1)


@cli.group()
def user() -> None:
    """Manage the user directory."""


@user.command("add")
@click.argument("email")
@click.option(
    "--role",
    type=click.Choice([r.value for r in UserRole]),
    required=True,
    help="Role of the new user",
)
@click.option("--first-name", type=str, default="", help="First name")
@click.option("--last-name", type=str, default="", help="Last name")
@click.pass_context
def user_add(ctx: click.Context, email: str, role: str, first_name: str, last_name: str) -> None:
    """Add a user and print its id."""
    settings = ctx.obj["settings"]
    db = _get_db(settings)
    try:
        try:
            created = db.create_user(
                User(email=email, role=UserRole(role), first_name=first_name, last_name=last_name)
            )
        except IntegrityError:
            click.echo(f"Error: a user with email {email} already exists", err=True)
            sys.exit(1)
        click.echo(created.id)
    finally:
        db.close()


@user.command("ls")
@click.option(
    "--role",
    type=click.Choice([r.value for r in UserRole]),
    default=None,
    help="Filter by role",
)
@click.pass_context
def user_list(ctx: click.Context, role: str | None) -> None:
    """List users."""
    settings = ctx.obj["settings"]
    db = _get_db(settings)
    try:
        users = db.list_users(UserRole(role) if role else None)
        if not users:
            click.echo("No users found.")
            return
        for u in users:
            click.echo(f"  [{u.id}] {u.role.value:10s} {u.email}")
    finally:
        db.close()


@cli.command()
@click.option("--host", type=str, default=None, help="Bind host")
@click.option("--port", type=int, default=None, help="Bind port")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Start the FastAPI API server."""
    import uvicorn

    settings = ctx.obj["settings"]
    uvicorn.run(
        "studyslot.api.app:create_app",
        factory=True,
        host=host or settings.api_host,
        port=port or settings.api_port,
    )
