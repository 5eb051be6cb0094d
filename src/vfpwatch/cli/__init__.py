"""vfpwatch command line.

``vfpwatch [-c CONFIG] [-v|-vv|-q] COMMAND`` where COMMAND is one of
``watch``, ``status`` or ``cleanup``. Global options are stashed on the
click context for the commands to pick up.
"""

from __future__ import annotations

import logging

import click

from vfpwatch import __version__
from vfpwatch.cli.cleanup import cleanup as cleanup_command
from vfpwatch.cli.status import status as status_command
from vfpwatch.cli.watch import watch as watch_command

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def log_level(verbosity: int, quiet: bool) -> int:
    """Map -v/-q flags to a level for the vfpwatch loggers.

    >>> log_level(0, False) == logging.WARNING
    True
    >>> log_level(2, False) == logging.DEBUG
    True
    """
    if quiet:
        return logging.ERROR
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def _configure_logging(level: int) -> None:
    # Third-party loggers stay at WARNING; only our own follow -v/-q.
    logging.basicConfig(level=logging.WARNING, format=_LOG_FORMAT, datefmt="%H:%M:%S")
    logging.getLogger("vfpwatch").setLevel(level)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, prog_name="vfpwatch")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML config file (overrides the per-user config.yaml).",
)
@click.option(
    "-v",
    "--verbose",
    "verbosity",
    count=True,
    help="Log session activity; repeat for PowerShell commands.",
)
@click.option("-q", "--quiet", is_flag=True, help="Only log errors.")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbosity: int, quiet: bool) -> None:
    """vfpwatch — live view of virtual-filtering allow/block decisions."""
    if verbosity and quiet:
        raise click.UsageError("--verbose and --quiet are mutually exclusive")

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    _configure_logging(log_level(verbosity, quiet))


for _command in (watch_command, status_command, cleanup_command):
    main.add_command(_command)
