"""Glob command for address wildcard translation"""

import sys

import click

from rxguard.errors import GlobError
from rxguard.glob import translate_glob
from rxguard.models import GlobTranslationResponse


@click.command('glob')
@click.argument('glob', type=str)
@click.option('--json', 'output_json', is_flag=True, help="Output as JSON")
def glob_command(glob, output_json):
    """
    Show the regex an address GLOB translates to.

    \b
    Syntax:
      *        any sequence of characters
      ?        any single character
      [a-z]    character class, [!a-z] negated
      {a,b}    alternatives
      \\x       literal x
    """
    try:
        response = GlobTranslationResponse(glob=glob, regex=translate_glob(glob))
    except GlobError as e:
        response = GlobTranslationResponse(glob=glob, error=e.message, position=e.position)

    if output_json:
        click.echo(response.model_dump_json(indent=2))
    elif response.error is not None:
        click.echo(f"Invalid glob: {response.error} (index {response.position})", err=True)
    else:
        click.echo(response.regex)

    if response.error is not None:
        sys.exit(1)
