"""Main CLI entry point with command groups"""

import click

from rxguard.__version__ import __version__
from rxguard.cli.check import check_command
from rxguard.cli.glob import glob_command
from rxguard.cli.match import match_command
from rxguard.cli.replace import replace_command
from rxguard.cli.serve import serve_command


class DefaultCommandGroup(click.Group):
    """Custom Click Group that allows a default command"""

    def parse_args(self, ctx, args):
        # During shell completion, don't redirect to default command
        if ctx.resilient_parsing:
            return super().parse_args(ctx, args)

        # If --help or --version is requested, show group help/version
        if not args or args[0] in ('--help', '-h', '--version'):
            return super().parse_args(ctx, args)

        if args[0] in self.commands:
            return super().parse_args(ctx, args)

        # Otherwise, treat as check command (default)
        return super().parse_args(ctx, ['check'] + args)


@click.group(cls=DefaultCommandGroup, invoke_without_command=True)
@click.version_option(version=__version__, prog_name='rxguard')
@click.pass_context
def cli(ctx):
    """
    rxguard - safety gate for user-supplied regexes and wildcard addresses.

    \b
    Commands:
      rxguard <pattern>                 Check a regex (default command)
      rxguard check <pattern>           Check a regex against safety limits
      rxguard replace <pattern> <tpl>   Validate a replacement template
      rxguard glob <glob>               Show the regex for an address glob
      rxguard match <a> <b>             Check whether two addresses match
      rxguard serve                     Start web API server

    \b
    Examples:
      rxguard "(a+)+"
      rxguard check "^[a-z]+$" --json
      rxguard replace "(a)(?<b>b)" '$1${b}'
      rxguard match foo.bar 'foo.*'
    """
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)


cli.add_command(check_command, name='check')
cli.add_command(replace_command, name='replace')
cli.add_command(glob_command, name='glob')
cli.add_command(match_command, name='match')
cli.add_command(serve_command, name='serve')


def main():
    """Entry point for the CLI"""
    cli()


if __name__ == '__main__':
    main()
