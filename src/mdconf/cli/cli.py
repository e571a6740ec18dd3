"""CLI entrypoint: Typer app definition, logging setup, and command registration"""

import logging
import sys
from typing import Annotated

import typer

from mdconf.cli.commands import (
    convert_and_publish_cmd,
    convert_cmd,
    dump_cmd,
    init_cmd,
    model_overview_cmd,
    publish_cmd,
)


app = typer.Typer(
    name="mdconf",
    no_args_is_help=True,
    help="Convert markdown page trees to a Confluence wiki content model and publish it",
)


def configure_logging(verbosity: int) -> None:
    """Attach a stderr handler to the 'mdconf' logger only; 0=WARNING, 1=INFO, 2+=DEBUG."""
    level = logging.WARNING if verbosity <= 0 else logging.INFO if verbosity == 1 else logging.DEBUG
    app_logger = logging.getLogger("mdconf")
    app_logger.setLevel(level)
    # a stale handler may hold a closed stream
    for stale in [h for h in app_logger.handlers if getattr(h, "_mdconf", False)]:
        app_logger.removeHandler(stale)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)8s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S"))
    handler.setLevel(level)
    handler._mdconf = True
    app_logger.addHandler(handler)


@app.callback()
def main(
    verbose: Annotated[int, typer.Option("--verbose", "-v", count=True, help="-v for info, -vv for debug")] = 0,
    ):
    configure_logging(verbose)


app.command(name="convert")(convert_cmd)
app.command(name="publish")(publish_cmd)
app.command(name="convert-and-publish")(convert_and_publish_cmd)
app.command(name="dump")(dump_cmd)
app.command(name="model-overview")(model_overview_cmd)
app.command(name="init")(init_cmd)
