#!/usr/bin/env python3
"""
Command-line interface for EVTC Summary.

Each subcommand prints a single fact about one EVTC file; `json` prints the
whole summary.
"""

import logging
from contextlib import contextmanager

import click

import config
from exceptions import EVTCError
from formatting import format_value, summary_to_json
from logger import get_logger, set_console_level
from parser import EVTCParser

logger = get_logger('cli')

LOG_FILE = click.argument("log_file", type=click.Path(exists=True, dir_okay=False))


@contextmanager
def open_log(ctx: click.Context, log_file: str):
    """Open the log with the shared parser, turning parse errors into CLI errors"""
    parser = ctx.ensure_object(dict).setdefault('parser', EVTCParser())
    try:
        with parser.open(log_file) as log:
            yield log
    except EVTCError as e:
        logger.error(f"Failed to parse {log_file}: {e}")
        raise click.ClickException(f"{type(e).__name__}: {e}") from e


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, verbose):
    """Summarize arcdps EVTC combat logs"""
    ctx.ensure_object(dict)
    if verbose:
        set_console_level(logging.DEBUG)


@cli.command()
def version():
    """Print the tool version"""
    click.echo(config.VERSION)


@cli.command("json")
@LOG_FILE
@click.pass_context
def json_command(ctx, log_file):
    """Print the full summary as JSON"""
    with open_log(ctx, log_file) as log:
        summary = log.summarize()
    click.echo(summary_to_json(summary))


@cli.command()
@LOG_FILE
@click.pass_context
def header(ctx, log_file):
    """Print arcdps version, encounter name and encounter id"""
    with open_log(ctx, log_file) as log:
        click.echo(log.header.arcdps_version)
        click.echo(log.encounter.name)
        click.echo(log.header.encounter_id)


@cli.command()
@LOG_FILE
@click.pass_context
def revision(ctx, log_file):
    """Print the combat event revision"""
    with open_log(ctx, log_file) as log:
        click.echo(log.header.revision)


@cli.command()
@LOG_FILE
@click.option("--guilds", is_flag=True, help="Also print each player's guild id")
@click.pass_context
def players(ctx, log_file, guilds):
    """Print the account name of every player"""
    with open_log(ctx, log_file) as log:
        for player in log.players(with_guilds=guilds):
            if guilds and player.guild is not None:
                click.echo(f"{player.account} {player.guild}")
            else:
                click.echo(player.account)


@cli.command()
@LOG_FILE
@click.pass_context
def success(ctx, log_file):
    """Print SUCCESS if the encounter was completed, else FAILURE"""
    with open_log(ctx, log_file) as log:
        click.echo(format_value(log.success()))


@cli.command("start_time")
@LOG_FILE
@click.pass_context
def start_time(ctx, log_file):
    """Print the server start time (unix seconds)"""
    with open_log(ctx, log_file) as log:
        click.echo(format_value(log.start_time()))


@cli.command("end_time")
@LOG_FILE
@click.pass_context
def end_time(ctx, log_file):
    """Print the server end time (unix seconds)"""
    with open_log(ctx, log_file) as log:
        click.echo(format_value(log.end_time()))


@cli.command("local_start_time")
@LOG_FILE
@click.pass_context
def local_start_time(ctx, log_file):
    """Print the local start timestamp"""
    with open_log(ctx, log_file) as log:
        click.echo(format_value(log.local_start_time()))


@cli.command("local_end_time")
@LOG_FILE
@click.pass_context
def local_end_time(ctx, log_file):
    """Print the local end timestamp (reward, else log end, else last event)"""
    with open_log(ctx, log_file) as log:
        click.echo(format_value(log.local_end_time()))


@cli.command("boss_maxhealth")
@LOG_FILE
@click.pass_context
def boss_maxhealth(ctx, log_file):
    """Print the boss maximum health"""
    with open_log(ctx, log_file) as log:
        click.echo(format_value(log.boss_max_health()))


@cli.command("is_cm")
@LOG_FILE
@click.pass_context
def is_cm(ctx, log_file):
    """Print NO, YES or UNKNOWN"""
    with open_log(ctx, log_file) as log:
        click.echo(log.cm_status().value)


@cli.command()
@LOG_FILE
@click.pass_context
def duration(ctx, log_file):
    """Print the encounter duration; nothing when end precedes start"""
    with open_log(ctx, log_file) as log:
        value = log.duration()
    if value is not None:
        click.echo(value)


@cli.command()
@LOG_FILE
@click.pass_context
def location(ctx, log_file):
    """Print the encounter location (raid wing or fractal)"""
    with open_log(ctx, log_file) as log:
        click.echo(log.encounter.location)


if __name__ == "__main__":
    cli()
