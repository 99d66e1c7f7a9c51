"""
Console logging for the ``tourmap`` command.

Rich renders the records; the HTTP and plotting libraries are held at
WARNING so a DEBUG run shows tourmap's own requests, not urllib3's.
"""
import logging

from rich.logging import RichHandler

QUIET_LOGGERS = ("urllib3", "matplotlib", "PIL", "pyogrio", "geopy")


def configure(level: str = "INFO") -> None:
    level = level.upper()
    logging.basicConfig(
        level=level,
        format="%(name)s │ %(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False, markup=False)],
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, logging.getLevelName(level)))
