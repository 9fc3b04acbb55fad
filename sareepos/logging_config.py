# sareepos/logging_config.py

import logging

LOG_FORMAT = "%(asctime)s.%(msecs)03d - %(name)s - %(funcName)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def configure_logging(app) -> None:
    """Console logging for the sareepos.* loggers and the Flask app logger."""
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)

    logger = logging.getLogger("sareepos")
    logger.setLevel(level)

    # create_app may run several times in one process (tests)
    if not any(getattr(h, "_sareepos_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        handler._sareepos_handler = True
        logger.addHandler(handler)

    app.logger.setLevel(level)
