"""
Command-line interface for the upload client.

Provides upload, verify, fetch and reset commands using the Click framework.
"""

import logging
import os
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from shared.config import ConfigurationError
from .client import Client
from .cloud_file import CloudFile
from .errors import EivuError

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Route module loggers through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # botocore is very chatty at debug level
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)


def _show(cloud_file: CloudFile) -> None:
    record = cloud_file.remote_attr
    table = Table(show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("md5", record.md5)
    table.add_row("state", record.state.value if record.state else "unknown")
    table.add_row("history", " -> ".join(s.value for s in record.state_history))
    table.add_row("resource type", cloud_file.resource_type or "-")
    table.add_row("asset", record.asset or "-")
    table.add_row("content type", record.content_type or "-")
    table.add_row("filesize", str(record.filesize) if record.filesize is not None else "-")
    console.print(table)


def _fail(error: Exception) -> None:
    console.print(f"[red]❌ Error: {error}[/red]")
    sys.exit(1)


@click.group()
@click.version_option(version="1.0.0")
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def cli(verbose):
    """
    Content-addressed media uploader.

    Uploads files to S3-compatible storage and tracks them through the
    reserve -> transfer -> complete lifecycle.
    """
    setup_logging(verbose)


@cli.command()
@click.argument('path')
@click.option('--nsfw', '-n', is_flag=True, help='Mark the upload as NSFW')
@click.option('--secured', '-s', is_flag=True, help='Secure the upload')
@click.option('--filename', '-f', help='Asset name to use when uploading a URL')
def upload(path, nsfw, secured, filename):
    """
    Upload a file, every file in a folder, or a URL.
    """
    try:
        client = Client()
        if path.startswith(('http://', 'https://')):
            _show(client.upload_remote_file(path, asset=filename, nsfw=nsfw, secured=secured))
        elif os.path.isdir(path.strip()):
            status = client.upload_folder(path, nsfw=nsfw, secured=secured)
            console.print(f"\n[green]✓[/green] Uploaded: [bold]{len(status['success'])}[/bold]")
            for failed, reason in status['failure'].items():
                console.print(f"[red]✗[/red] {failed}: {reason}")
            if status['failure']:
                sys.exit(1)
        else:
            _show(client.upload_file(path, nsfw=nsfw, secured=secured))
    except (EivuError, ConfigurationError) as e:
        _fail(e)


@cli.command()
@click.argument('path')
def verify(path):
    """Check that a local file has a completed cloud record."""
    try:
        if Client().verify_upload(path):
            console.print(f"[green]✓[/green] {path} is uploaded")
        else:
            console.print(f"[yellow]{path} is not uploaded[/yellow]")
            sys.exit(1)
    except (EivuError, ConfigurationError) as e:
        _fail(e)


@cli.command()
@click.argument('md5')
def fetch(md5):
    """Show the cloud record for a hash."""
    try:
        _show(CloudFile.fetch(md5))
    except (EivuError, ConfigurationError) as e:
        _fail(e)


@cli.command()
@click.argument('md5')
def reset(md5):
    """Return a cloud record to the reserved state."""
    try:
        _show(CloudFile.fetch(md5).reset())
    except (EivuError, ConfigurationError) as e:
        _fail(e)
