import logging

from rich.logging import RichHandler

from utils import config


class PaddedNameFormatter(logging.Formatter):
    """Pads logger names to the widest name seen so far, so messages line up."""

    name_width = 12

    def format(self, record):
        PaddedNameFormatter.name_width = max(
            PaddedNameFormatter.name_width, len(record.name)
        )
        record.padded_name = record.name.ljust(PaddedNameFormatter.name_width)
        return super().format(record)


def _resolve_level() -> int:
    if config.DEBUG:
        return logging.DEBUG
    level = logging.getLevelName(config.LOG_LEVEL)
    return level if isinstance(level, int) else logging.INFO


def get_logger(name=None) -> logging.Logger:
    """
    Return a logger writing through RichHandler, plus a plain file handler
    when LOG_FILE is configured (the TUI owns the terminal while running).
    """
    if name is None:
        name = "requisition"
    logger = logging.getLogger(name)
    level = _resolve_level()
    logger.setLevel(level)

    if not logger.handlers:
        console_handler = RichHandler(
            show_time=True,
            show_level=True,
            show_path=False,
            rich_tracebacks=True,
            log_time_format="[%X]",
        )
        console_handler.setFormatter(PaddedNameFormatter("[%(padded_name)s]  %(message)s"))
        console_handler.setLevel(level)
        logger.addHandler(console_handler)

        if config.LOG_FILE:
            file_handler = logging.FileHandler(config.LOG_FILE, encoding="utf-8")
            file_handler.setFormatter(
                PaddedNameFormatter(
                    "%(asctime)s %(levelname)-7s [%(padded_name)s]  %(message)s"
                )
            )
            file_handler.setLevel(level)
            logger.addHandler(file_handler)

        logger.propagate = False
        logger.debug(f"Logger for '{name}' initialized.")

    return logger
