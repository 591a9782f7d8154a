"""CLI entry point for job execution."""

import sys

import click

from quiz_engine.common.clock import utcnow
from quiz_engine.core.logging import get_logger, setup_logging
from quiz_engine.db.session import SessionLocal
from quiz_engine.jobs.sweep_expired_sessions import JOB_KEY as SWEEP_JOB_KEY
from quiz_engine.jobs.sweep_expired_sessions import run_sweep

logger = get_logger(__name__)


@click.command()
@click.argument("job_key")
@click.option("--log-level", default=None, help="Override LOG_LEVEL for this run.")
def run(job_key: str, log_level: str | None):
    """
    Run a scheduled job.

    Example:
        python -m quiz_engine.jobs.run sweep_expired_sessions
    """
    setup_logging(log_level)

    if job_key != SWEEP_JOB_KEY:
        click.echo(f"Unknown job key: {job_key}", err=True)
        sys.exit(1)

    db = SessionLocal()
    try:
        result = run_sweep(db, scheduled_for=utcnow())
        click.echo(f"Job completed: {result}")
    except Exception as e:
        logger.error(f"Job failed: {e}", exc_info=True)
        click.echo(f"Job failed: {e}", err=True)
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    run()
