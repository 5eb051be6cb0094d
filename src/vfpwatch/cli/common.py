"""Helpers shared by CLI commands."""

from __future__ import annotations

import click

from vfpwatch.config import ConfigError, MonitorConfig


def load_config(ctx: click.Context, **overrides: object) -> MonitorConfig:
    """Build the effective config: file/env from the group, then CLI overrides.

    Empty multi-value options count as "not given".
    """
    config_path = (ctx.obj or {}).get("config_path")
    cleaned = {
        key: value
        for key, value in overrides.items()
        if value is not None and value != ()
    }
    try:
        config = MonitorConfig.load(config_path).merged(cleaned)
        config.validate()
    except ConfigError as exc:
        raise click.UsageError(str(exc)) from exc
    return config


def session_name_option(f):
    return click.option(
        "--session-name",
        "-n",
        help="Name of the capture session.  [default: VfpWatch]",
    )(f)
