#!/usr/bin/env python3
"""
confstore CLI - inspect and maintain configuration files
"""

import json
import os
import sys
from typing import Any, Callable, List, Optional

import click
from rich.console import Console

from confstore._version import __version__
from confstore.core.exceptions import ConfstoreError
from confstore.secure import DEFAULT_ALGORITHM
from confstore.stores.file import FileStore

console = Console()


def store_options(func: Callable) -> Callable:
    """Options shared by every command that opens a store."""
    decorators = [
        click.argument('file'),
        click.option('--secret', envvar='CONFSTORE_SECRET', help='Secret for encrypted files'),
        click.option(
            '--secret-path',
            type=click.Path(exists=True, dir_okay=False),
            help='File holding the secret',
        ),
        click.option('--alg', default=DEFAULT_ALGORITHM, show_default=True, help='Cipher algorithm'),
        click.option('--format', 'format_name', default='json', show_default=True, help='File format'),
        click.option('--search', is_flag=True, help='Search parent directories for FILE'),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def open_store(
    file: str,
    secret: Optional[str],
    secret_path: Optional[str],
    alg: str,
    format_name: str,
    search: bool,
    warnings: List[str],
) -> FileStore:
    """Build a store from CLI options, turning library errors into click errors."""
    secure: Any = None
    if secret or secret_path:
        secure = {'secret': secret, 'secret_path': secret_path, 'alg': alg}

    try:
        return FileStore(
            file=file,
            dir=os.getcwd(),
            format=format_name,
            search=search,
            secure=secure,
            on_warning=warnings.append,
        )
    except ConfstoreError as e:
        raise click.ClickException(e.message)


def load_store(store: FileStore) -> None:
    try:
        store.load_sync()
    except ConfstoreError as e:
        raise click.ClickException(e.message)


def report_warnings(warnings: List[str]) -> None:
    for message in warnings:
        click.echo(click.style(f"Warning: {message}", fg="yellow"), err=True)


def parse_value(raw: str) -> Any:
    """Values are JSON when they parse as JSON, plain strings otherwise."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


@click.group()
@click.version_option(version=__version__, prog_name="confstore")
def cli():
    """
    confstore - configuration file toolkit

    Read, update and re-encrypt configuration files.
    """
    pass


@cli.command()
@store_options
def show(file, secret, secret_path, alg, format_name, search):
    """Print the (decrypted) document"""
    warnings: List[str] = []
    store = open_store(file, secret, secret_path, alg, format_name, search, warnings)
    load_store(store)
    report_warnings(warnings)
    console.print_json(data=store.store)


@cli.command()
@store_options
@click.argument('key')
def get(file, secret, secret_path, alg, format_name, search, key):
    """Print the value at KEY (path segments separated by ':')"""
    warnings: List[str] = []
    store = open_store(file, secret, secret_path, alg, format_name, search, warnings)
    load_store(store)
    report_warnings(warnings)

    value = store.get(key)
    if value is None:
        click.echo(click.style(f"Key not found: {key}", fg="red"), err=True)
        sys.exit(1)
    console.print_json(data=value)


@cli.command(name='set')
@store_options
@click.argument('key')
@click.argument('value')
def set_value(file, secret, secret_path, alg, format_name, search, key, value):
    """Set KEY to VALUE and save the file"""
    warnings: List[str] = []
    store = open_store(file, secret, secret_path, alg, format_name, search, warnings)
    load_store(store)
    report_warnings(warnings)

    store.set(key, parse_value(value))
    try:
        store.save_sync()
    except ConfstoreError as e:
        raise click.ClickException(e.message)
    click.echo(click.style(f"✓ {key} saved to {store.file}", fg="green"))


@cli.command()
@store_options
def reencrypt(file, secret, secret_path, alg, format_name, search):
    """Re-encrypt every value with a fresh IV (upgrades legacy files)"""
    if not (secret or secret_path):
        raise click.UsageError("reencrypt needs --secret or --secret-path")

    warnings: List[str] = []
    store = open_store(file, secret, secret_path, alg, format_name, search, warnings)
    load_store(store)

    try:
        store.save_sync()
    except ConfstoreError as e:
        raise click.ClickException(e.message)

    upgraded = " (legacy envelopes upgraded)" if warnings else ""
    click.echo(
        click.style(f"✓ Re-encrypted {len(store.store)} values in {store.file}{upgraded}", fg="green")
    )


def main():
    """Main entry point"""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user.")
        sys.exit(0)
    except Exception as e:
        click.echo(click.style(f"Error: {e}", fg="red"))
        if os.environ.get('CONFSTORE_DEBUG'):
            import traceback

            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
