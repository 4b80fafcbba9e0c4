"""Serve command for the HTTP API"""

import os

import click


@click.command('serve')
@click.option('--host', default='127.0.0.1', show_default=True, help='Interface to bind')
@click.option('--port', default=8000, show_default=True, type=int, help='Port to listen on')
@click.option(
    '--log-level',
    type=click.Choice(['debug', 'info', 'warning', 'error'], case_sensitive=False),
    default=None,
    help='Log level (default: RXGUARD_LOG_LEVEL or info)',
)
def serve_command(host, port, log_level):
    """
    Start the rxguard web API server.

    \b
    Endpoints:
      GET /v1/check        pattern safety check
      GET /v1/replacement  replacement template check
      GET /v1/glob         glob translation
      GET /v1/match        address matching
      GET /metrics         Prometheus metrics
      GET /docs            OpenAPI documentation
    """
    import uvicorn

    if log_level:
        # read by rxguard.web at import time
        os.environ['RXGUARD_LOG_LEVEL'] = log_level.upper()

    uvicorn.run('rxguard.web:app', host=host, port=port, log_level=(log_level or 'info').lower())
