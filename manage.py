"""
manage.py — CLI admin commands for the itinerary job service.

Usage:
    python manage.py check-token
    python manage.py job-status 3f2c9a1e-...
"""

import asyncio
import json

import click
import httpx

from config import load_settings
from errors import AuthError, NotFoundError
from firestore_client import FirestoreClient
from google_auth import TokenProvider


async def _mint(settings):
    async with httpx.AsyncClient(timeout=settings.http_timeout) as http:
        return await TokenProvider.from_settings(settings, http).mint()


async def _fetch(settings, job_id: str) -> dict:
    async with httpx.AsyncClient(timeout=settings.http_timeout) as http:
        tokens = TokenProvider.from_settings(settings, http)
        return await FirestoreClient.from_settings(settings, tokens, http).get(job_id)


@click.group()
def cli():
    """Itinerary job service admin commands."""


@cli.command('check-token')
def check_token():
    """Mint a Firestore access token with the configured service account."""
    settings = load_settings()
    try:
        access = asyncio.run(_mint(settings))
    except AuthError as exc:
        click.echo(f'✗ {exc}', err=True)
        raise SystemExit(1)
    click.echo(f'✓ Access token minted for {settings.client_email} (expires_at={access.expires_at})')


@cli.command('job-status')
@click.argument('job_id')
def job_status(job_id: str):
    """Print the stored record for JOB_ID as JSON."""
    settings = load_settings()
    try:
        doc = asyncio.run(_fetch(settings, job_id))
    except NotFoundError:
        click.echo(f'✗ Job {job_id!r} not found.', err=True)
        raise SystemExit(1)
    except AuthError as exc:
        click.echo(f'✗ {exc}', err=True)
        raise SystemExit(1)
    click.echo(json.dumps(doc, indent=2))


if __name__ == '__main__':
    cli()
