"""Match command for wildcard addresses"""

import sys

import click

from rxguard.address import match_address
from rxguard.models import AddressMatchResponse


@click.command('match')
@click.argument('address_a', type=str)
@click.argument('address_b', type=str)
@click.option('--json', 'output_json', is_flag=True, help="Output as JSON")
def match_command(address_a, address_b, output_json):
    """
    Check whether two wildcard addresses match each other.

    Either address may contain wildcards. Exits with 0 on a match and 1 otherwise.

    \b
    Examples:
      rxguard match foo.bar 'foo.*'
      rxguard match '{red,blue}_box' blue_box
    """
    matched = match_address(address_a, address_b)

    if output_json:
        response = AddressMatchResponse(address_a=address_a, address_b=address_b, matches=matched)
        click.echo(response.model_dump_json(indent=2))
    else:
        click.echo('match' if matched else 'no match')

    if not matched:
        sys.exit(1)
