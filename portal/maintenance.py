"""Operator commands for the portal login audit trail and throttles.

Usage:
    portal-maintenance rotate-events --older-than-days 90 --output archive.jsonl
    portal-maintenance recent-events --email anna@bolag.se
    portal-maintenance throttle-status anna@bolag.se
"""

import json
import logging
from pathlib import Path
from typing import Optional
from uuid import UUID

import click

from clients.postgres_client import PostgresClient
from clients.valkey_client import ValkeyClient
from clients.vault_client import get_database_url, get_valkey_url
from portal.config import PortalConfig
from portal.issuer import normalize_email
from portal.rate_limiter import Bucket, RateLimiter
from portal.security_logger import SecurityEvent, SecurityLogger
from utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def _postgres() -> PostgresClient:
    return PostgresClient(get_database_url())


def _valkey() -> ValkeyClient:
    return ValkeyClient(get_valkey_url())


@click.group()
def cli() -> None:
    """Client portal login maintenance."""
    setup_logging()


@cli.command("rotate-events")
@click.option("--older-than-days", default=90, show_default=True, type=click.IntRange(min=1))
@click.option("--output", "-o", required=True, type=click.Path(dir_okay=False, path_type=Path))
def rotate_events(older_than_days: int, output: Path) -> None:
    """Archive old security events to a JSON lines file and delete them."""
    count = SecurityLogger(_postgres()).rotate_logs(older_than_days, output)
    click.echo(f"Archived {count} events to {output}")


@cli.command("recent-events")
@click.option("--email", default=None)
@click.option("--user-id", default=None, type=click.UUID)
@click.option(
    "--event-type",
    default=None,
    type=click.Choice([e.value for e in SecurityEvent]),
)
@click.option("--limit", default=50, show_default=True, type=click.IntRange(1, 1000))
def recent_events(
    email: Optional[str], user_id: Optional[UUID], event_type: Optional[str], limit: int
) -> None:
    """Print recent security events as JSON lines, newest first."""
    events = SecurityLogger(_postgres()).get_recent_events(
        email=email,
        user_id=user_id,
        event_type=SecurityEvent(event_type) if event_type else None,
        limit=limit,
    )
    for event in events:
        click.echo(json.dumps(event, default=str))


@cli.command("throttle-status")
@click.argument("email")
@click.option("--ip", default=None, help="Also show the per-IP request counter")
def throttle_status(email: str, ip: Optional[str]) -> None:
    """Show remaining attempts for an email (and optionally an IP)."""
    limiter = RateLimiter(_valkey(), PortalConfig())
    email = normalize_email(email)
    click.echo(f"requests left for {email}: {limiter.get_remaining_attempts(Bucket.REQUEST_EMAIL, email)}")
    click.echo(f"verifications left for {email}: {limiter.get_remaining_attempts(Bucket.VERIFY_EMAIL, email)}")
    if ip:
        click.echo(f"requests left for {ip}: {limiter.get_remaining_attempts(Bucket.REQUEST_IP, ip)}")


@cli.command("clear-throttle")
@click.argument("email")
def clear_throttle(email: str) -> None:
    """Clear the per-email request and verification counters."""
    email = normalize_email(email)
    RateLimiter(_valkey(), PortalConfig()).reset(email)
    logger.info(f"Throttle counters cleared for {email}")
    click.echo(f"Cleared throttle counters for {email}")


if __name__ == "__main__":
    cli()
