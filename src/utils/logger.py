import logging
import os

from rich.logging import RichHandler
from textual.logging import TextualHandler


class CenteredFormatter(logging.Formatter):
    longest_name_length = 12  # grows with the longest logger name seen

    def __init__(self, fmt=None, datefmt=None, style="%", initial_width=12):
        super().__init__(fmt, datefmt, style)
        CenteredFormatter.longest_name_length = initial_width

    def format(self, record):
        CenteredFormatter.longest_name_length = max(
            CenteredFormatter.longest_name_length, len(record.name)
        )
        record.name = record.name.center(CenteredFormatter.longest_name_length)
        return super().format(record)


def _log_level() -> int:
    if os.getenv("DEBUG") or os.getenv("SKYCART_DEBUG"):
        return logging.DEBUG
    return logging.INFO


def get_logger(name=None) -> logging.Logger:
    """
    Return a logger named ``name`` that writes through rich.

    While the Textual app is running, stdout belongs to the UI, so records
    are also forwarded to the Textual devtools console
    (``textual console``). Set ``SKYCART_LOG_FILE`` to keep a plain log file.
    """
    if name is None:
        name = "skycart"
    logger = logging.getLogger(name)
    log_level = _log_level()
    logger.setLevel(log_level)

    if not logger.handlers:
        formatter = CenteredFormatter("[%(name)s]  %(message)s")

        console_handler = RichHandler(
            show_time=True,
            show_level=True,
            show_path=False,
            rich_tracebacks=True,
            log_time_format="[%X]",
        )
        console_handler.setFormatter(formatter)
        console_handler.setLevel(log_level)
        logger.addHandler(console_handler)

        textual_handler = TextualHandler(stderr=False)
        textual_handler.setLevel(log_level)
        logger.addHandler(textual_handler)

        log_file = os.getenv("SKYCART_LOG_FILE")
        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s")
            )
            file_handler.setLevel(log_level)
            logger.addHandler(file_handler)

        logger.propagate = False
        logger.debug(f"Logger for '{name}' initialized.")

    return logger
