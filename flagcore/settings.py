"""Library settings and logging setup.

Settings are read from the stringy ``flagcore.*`` keys of an application's
raw configuration:

.. highlight:: ini

::

    [app:main]
    flagcore.debug = false
    flagcore.log_format = json
    flagcore.query_overrides = true

.. highlight:: py

All keys are optional. ``log_format`` defaults to JSON when stdout is not a
terminal and to plain text otherwise.

"""
import logging
import sys

from typing import Dict

from flagcore.lib import config
from flagcore.lib.log_formatter import CustomJsonFormatter


JSON_LOG_FORMAT = (
    "%(levelname)s %(message)s %(funcName)s %(lineno)d %(module)s %(name)s "
    "%(pathname)s %(process)d %(processName)s %(thread)d %(threadName)s"
)
PLAIN_LOG_FORMAT = "%(levelname)-8s %(name)s: %(message)s"

SETTINGS_PREFIX = "flagcore"
SETTINGS_SPEC: config.ConfigSpec = {
    "debug": config.Optional(config.Boolean, default=False),
    "log_format": config.Optional(config.OneOf(json="json", plain="plain")),
    "query_overrides": config.Optional(config.Boolean, default=True),
}


def parse_settings(raw_config: Dict[str, str]) -> config.ConfigNamespace:
    """Parse the ``flagcore.*`` keys of a raw configuration dictionary.

    :raises: :py:exc:`~flagcore.lib.config.ConfigurationError` if a value
        is invalid or a ``flagcore.*`` key is not a known setting.

    """
    return config.parse_config(raw_config, SETTINGS_SPEC, prefix=SETTINGS_PREFIX)


def configure_logging(settings: config.ConfigNamespace) -> logging.Handler:
    """Send the library's diagnostics to stderr.

    Only the ``flagcore`` logger is touched, so applications keep control of
    the root logger.

    :returns: The installed handler, so that callers can remove it again.

    """
    logging_level = logging.DEBUG if settings.debug else logging.INFO

    log_format = settings.log_format
    if log_format is None:
        log_format = "plain" if sys.stdout.isatty() else "json"

    formatter: logging.Formatter
    if log_format == "json":
        formatter = CustomJsonFormatter(JSON_LOG_FORMAT)
    else:
        formatter = logging.Formatter(PLAIN_LOG_FORMAT)

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    library_logger = logging.getLogger("flagcore")
    library_logger.setLevel(logging_level)
    library_logger.addHandler(handler)
    return handler
