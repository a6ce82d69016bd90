"""
Console and logging setup.

User-facing messages go through a Rich console on stderr, and standard
``logging`` records are routed to the same console with a RichHandler so
that progress output never mixes with the report on stdout.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    """
    Configure the root logger to write through the Rich console.

    Args:
        verbose: Log DEBUG records instead of WARNING and above.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if isinstance(handler, RichHandler):
            root_logger.removeHandler(handler)

    rich_handler = RichHandler(
        console=console,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    root_logger.addHandler(rich_handler)
    root_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
