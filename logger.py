import os
import logging
from rich.console import Console
from rich.logging import RichHandler
from rich.traceback import install

# frames from these libs are hidden in tracebacks
import tomlkit, voluptuous, websockets

console = Console()

# websockets logs every frame at debug
LIBRARY_LEVELS = {
    "websockets": logging.INFO,
    "asyncio": logging.WARNING,
}


def setup_logging(level=None, show_locals=False):
    """
    Route all logging through one rich console. LOGLEVEL picks the level
    when none is given.
    """
    FORMAT = "%(message)s"
    logging_handler = RichHandler(
        level=level or os.environ.get("LOGLEVEL", "INFO"),
        console=console,
        rich_tracebacks=True,
        tracebacks_show_locals=show_locals,
        tracebacks_suppress=[tomlkit, voluptuous, websockets]
    )

    logging.basicConfig(
        level="NOTSET", format=FORMAT, datefmt="[%X]", handlers=[logging_handler]
    )
    for name, library_level in LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(library_level)

    install(
        console = console,
        show_locals = show_locals,
        suppress = [tomlkit, voluptuous, websockets]
    )
