"""Replace command for validating replacement templates"""

import sys

import click

from rxguard.models import ReplacementCheckResponse


@click.command('replace')
@click.argument('pattern', type=str)
@click.argument('template', type=str)
@click.option('--json', 'output_json', is_flag=True, help="Output as JSON")
@click.option('--no-color', is_flag=True, help="Disable colored output")
def replace_command(pattern, template, output_json, no_color):
    """
    Validate a replacement TEMPLATE against the groups of PATTERN.

    Templates refer to groups as $1 .. $9 and ${name}; \\ escapes the next
    character. Only the first digit of $12 has to name an existing group.

    \b
    Examples:
      rxguard replace "(?<x>a)(b)" '$1-${x}'   # valid
      rxguard replace "(a)" '$2'               # group 2 does not exist
    """
    response = ReplacementCheckResponse.run(pattern, template)

    if output_json:
        click.echo(response.model_dump_json(indent=2))
    else:
        colorize = not no_color and sys.stdout.isatty()
        click.echo(response.to_cli(colorize=colorize))

    if not response.valid:
        sys.exit(1)
