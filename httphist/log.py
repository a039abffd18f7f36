"""httphist logging - route log records through click to stderr."""

import logging
import os

import click

LOG_FORMAT = "%(levelname)s [%(name)s] %(message)s"
LOG_LEVEL_ENV = "HTTPHIST_LOG_LEVEL"


class ClickEchoHandler(logging.Handler):
    """Write log records with click.echo(err=True).

    Keeps diagnostics on stderr alongside the tool's own error output, and
    lets click.testing.CliRunner capture them.
    """

    def emit(self, record):
        try:
            click.echo(self.format(record), err=True)
        except Exception:
            self.handleError(record)


def configure_logging(level=None):
    """Install a single ClickEchoHandler on the root logger.

    Level resolution: HTTPHIST_LOG_LEVEL env var, then the level argument
    (usually the config's log_level), then WARNING.
    """
    level = os.environ.get(LOG_LEVEL_ENV) or level or "WARNING"
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.WARNING)

    handler = ClickEchoHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # requests/urllib3 chatter is only useful when debugging httphist itself
    if level > logging.DEBUG:
        logging.getLogger("urllib3").setLevel(logging.WARNING)
    return root
