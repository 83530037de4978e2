import logging

_SHORT_LEVELS = {
    "DEBUG": "DBG",
    "INFO": "INF",
    "WARNING": "WRN",
    "ERROR": "ERR",
    "CRITICAL": "CRT",
}

# Third-party loggers that are far too chatty at DEBUG.
_QUIET_LOGGERS = ("sqlalchemy.engine", "urllib3.connectionpool")


class ProfessionalFormatter(logging.Formatter):
    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(shortlevel)-3s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record) -> str:
        record.shortlevel = _SHORT_LEVELS.get(record.levelname, "???")
        return super().format(record)


def configure_logging(level=logging.WARNING, stream=None) -> logging.Logger:
    """Install the ledger's log format on the root logger and return it.

    Safe to call more than once; a handler is only added the first time.
    """
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(ProfessionalFormatter())
        root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    return root_logger
