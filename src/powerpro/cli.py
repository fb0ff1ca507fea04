"""CLI entry point for powerpro."""

import logging

import click

from . import __version__
from .commands import (
    advance,
    enroll,
    init,
    lifts,
    log_set,
    maxes,
    programs,
    progression,
    serve,
    status,
    unenroll,
    workout,
)
from .settings import get_settings


@click.group()
@click.version_option(version=__version__, prog_name="powerpro")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool):
    """powerpro: strength program prescription and progression engine.

    Resolves program days into concrete workouts from each athlete's maxes,
    and advances maxes as progression rules fire.

    Example usage:

        # Initialize the database with the sample programs
        powerpro init --samples

        # Record a training max and enroll
        powerpro maxes set alice squat 315
        powerpro enroll alice starting-strength

        # See today's workout, then move on
        powerpro workout current alice
        powerpro advance alice
    """
    level = "DEBUG" if verbose else get_settings().log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Register commands
main.add_command(init)
main.add_command(lifts)
main.add_command(maxes)
main.add_command(programs)
main.add_command(enroll)
main.add_command(unenroll)
main.add_command(status)
main.add_command(advance)
main.add_command(workout)
main.add_command(progression)
main.add_command(log_set)
main.add_command(serve)


def run():
    """Run the CLI."""
    main()


if __name__ == "__main__":
    run()
