import logging

LOG_FORMAT = "%(asctime)s\t%(name)s\t%(levelname)s\t%(message)s"


def get_study_logger(study_name: str, dev_mode: bool = False) -> logging.Logger:
    """Return the ``pioneer.<study_name>`` logger.

    A console handler is attached the first time. Dev mode logs at DEBUG,
    otherwise only warnings and above are emitted.
    """
    logger = logging.getLogger(f"pioneer.{study_name}")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if dev_mode else logging.WARNING)
    return logger
