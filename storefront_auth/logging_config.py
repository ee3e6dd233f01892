import logging

from storefront_auth.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str | None = None) -> None:
    root = logging.getLogger()
    handler_exists = any(
        getattr(handler, "_storefront_auth", False) for handler in root.handlers
    )
    if not handler_exists:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._storefront_auth = True
        root.addHandler(handler)
    root.setLevel(level or settings.log_level)
