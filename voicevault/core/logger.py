import logging

from voicevault.core.config import Settings, get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(settings: Settings | None = None) -> logging.Logger:
    """Attach a single formatted stream handler to the package logger."""
    settings = settings or get_settings()
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)

    logger = logging.getLogger("voicevault")
    logger.setLevel(level)

    # Avoid duplicate handlers if setup runs more than once
    if not any(getattr(h, "_voicevault_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._voicevault_handler = True
        logger.addHandler(handler)

    return logger
