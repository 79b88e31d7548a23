"""Logging-Einrichtung über rich.logging.RichHandler."""

import logging

from rich.logging import RichHandler

from config.schema import LoggingConfig


def configure_logging(cfg: LoggingConfig) -> None:
    """Setzt Level und RichHandler am Root-Logger (mehrfacher Aufruf ersetzt den Handler)."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)
    handler = RichHandler(
        rich_tracebacks=cfg.rich_tracebacks,
        show_path=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)
    root.setLevel(cfg.level)
