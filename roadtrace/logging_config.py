# path: roadtrace/logging_config.py

import logging

from rich.logging import RichHandler

_configured = False


def configure(level: str = "INFO") -> None:
    global _configured
    if _configured:
        logging.getLogger().setLevel(level.upper())
        return
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s │ %(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_time=False, show_path=False)],
    )
    _configured = True
