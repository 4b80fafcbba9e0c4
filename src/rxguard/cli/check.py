"""Check command for regex safety limits"""

import sys

import click

from rxguard.models import CheckLimits, SafetyCheckResponse
from rxguard.safe_regex import DEFAULT_REPETITION_LIMIT, DEFAULT_STAR_HEIGHT_LIMIT


@click.command()
@click.argument('pattern', type=str)
@click.option(
    '--star-height-limit',
    '-s',
    type=click.IntRange(min=0),
    default=DEFAULT_STAR_HEIGHT_LIMIT,
    show_default=True,
    help='Maximum nesting depth of unbounded quantifiers (RXGUARD_STAR_HEIGHT_LIMIT)',
)
@click.option(
    '--repetition-limit',
    '-r',
    type=click.IntRange(min=0),
    default=DEFAULT_REPETITION_LIMIT,
    show_default=True,
    help='Maximum product of finite quantifier bounds (RXGUARD_REPETITION_LIMIT)',
)
@click.option('--allow-backreference', '-b', is_flag=True, help='Accept patterns with backreferences')
@click.option('--json', 'output_json', is_flag=True, help="Output as JSON")
@click.option('--no-color', is_flag=True, help="Disable colored output")
def check_command(pattern, star_height_limit, repetition_limit, allow_backreference, output_json, no_color):
    """
    Check a regex for malformed syntax and catastrophic backtracking risk.

    \b
    Limits:
      star height:     nesting of unbounded quantifiers, (a+)+ has 2
      repetition:      product of finite bounds, (a{50}){50} costs 2500
      backreferences:  refused unless --allow-backreference

    \b
    Exit codes:
      0  pattern is safe
      1  pattern is malformed
      2  pattern exceeds a limit

    \b
    Examples:
      rxguard check "^[a-z]+$"            # safe
      rxguard check "(a+)+"               # star height 2 - unsafe
      rxguard check "(a+)+" -s 2          # accepted with a higher limit
      rxguard check "(a)\\1" -b --json     # allow backreferences, JSON output
    """
    limits = CheckLimits(
        star_height_limit=star_height_limit,
        repetition_limit=repetition_limit,
        allow_backreference=allow_backreference,
    )
    response = SafetyCheckResponse.run(pattern, limits)

    if output_json:
        click.echo(response.model_dump_json(indent=2))
    else:
        colorize = not no_color and sys.stdout.isatty()
        click.echo(response.to_cli(colorize=colorize))

    if response.error_type == 'pattern_error':
        sys.exit(1)
    if not response.safe:
        sys.exit(2)
