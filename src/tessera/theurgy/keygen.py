"""
Theurgy Keygen - Create a key for the local development agent.

The browser wallet is the normal signer. This key lets ``--agent keyfile``
sign on development networks without one.
"""

from __future__ import annotations

import click

from ..sigil.keyfile import generate_key, load_secret_key, save_secret_key


@click.command()
@click.option("--force", is_flag=True, help="Replace an existing key")
def keygen(force: bool) -> None:
    """Generate a development signing key in ~/.tessera/.env."""
    try:
        load_secret_key()
        exists = True
    except ValueError:
        exists = False

    if exists and not force:
        click.echo("A key already exists. Use --force to replace it.")
        return

    secret, address = generate_key()
    path = save_secret_key(secret)

    click.echo(click.style("  Address: ", dim=True) + click.style(address, fg="bright_white"))
    click.echo(click.style("  Config:  ", dim=True) + click.style(str(path), fg="bright_white"))
    click.echo()
    click.secho(f"  IMPORTANT: Back up {path} if this key will hold funds.", fg="yellow", bold=True)
