# pylint: disable=invalid-name
"""Parsing of the library's flat settings.

Applications hand the library their raw, stringy configuration, typically
the ``[app:main]`` section of an INI file. Only keys under one prefix are
read; everything else belongs to the application:

.. highlight:: ini

::

    [app:main]
    flagcore.debug = false
    flagcore.log_format = json
    flagcore.query_overrides = true

.. highlight:: py

A spec maps each setting name (without the prefix) to a parser. Settings are
flat, so names never contain dots. A key under the prefix that the spec does
not name is rejected, which catches typos such as ``flagcore.debgu``.

.. doctest::

    >>> from flagcore.lib import config
    >>> cfg = config.parse_config(
    ...     {"flagcore.log_format": "JSON", "other.key": "ignored"},
    ...     {
    ...         "debug": config.Optional(config.Boolean, default=False),
    ...         "log_format": config.Optional(config.OneOf(json="json", plain="plain")),
    ...     },
    ...     prefix="flagcore",
    ... )
    >>> cfg.log_format
    'json'
    >>> cfg.debug
    False

"""
from typing import Any
from typing import Callable
from typing import Dict
from typing import Optional as OptionalType
from typing import TypeVar
from typing import Union


T = TypeVar("T")

RawConfig = Dict[str, str]
ConfigSpec = Dict[str, Callable[[str], Any]]


class ConfigurationError(Exception):
    """Raised when a setting is not recognized or has an invalid value."""

    def __init__(self, key: str, error: Union[str, Exception]):
        super().__init__(f"{key}: {error}")
        self.key = key
        self.error = error


def Boolean(text: str) -> bool:  # noqa: D401
    """``true`` or ``false``, case insensitive."""
    lowered = text.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise ValueError(f"expected 'true' or 'false', got {text!r}")


def OneOf(**options: T) -> Callable[[str], T]:  # noqa: D401
    """One of several choices, case insensitive.

    Each keyword is a choice as written in the configuration, and its value
    is what the choice parses to::

        OneOf(json="json", plain="plain")

    """

    def one_of(text: str) -> T:
        try:
            return options[text.lower()]
        except KeyError:
            raise ValueError(f"expected one of {sorted(options)!r}, got {text!r}")

    return one_of


def Optional(
    item_parser: Callable[[str], T], default: OptionalType[T] = None
) -> Callable[[str], OptionalType[T]]:  # noqa: D401
    """A setting parsed by ``item_parser``, or ``default`` when left blank."""

    def optional(text: str) -> OptionalType[T]:
        if not text:
            return default
        return item_parser(text)

    return optional


class ConfigNamespace(dict):
    """Parsed settings, readable as attributes."""

    def __getattr__(self, name: str) -> Any:
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name)


def parse_config(raw_config: RawConfig, spec: ConfigSpec, prefix: str) -> ConfigNamespace:
    """Parse the ``<prefix>.*`` keys of a raw configuration.

    Values have surrounding whitespace stripped before they are parsed, and a
    missing key parses as blank text.

    :param raw_config: The raw stringy configuration dictionary.
    :param spec: Parsers by setting name.
    :param prefix: The section of the configuration to read.
    :raises: :py:exc:`ConfigurationError` if a value does not parse or a key
        under ``prefix`` is not in ``spec``.

    """
    parsed = ConfigNamespace()
    for name, parser in spec.items():
        assert "." not in name, "settings are flat, dots are not allowed in names"

        key = f"{prefix}.{name}"
        try:
            parsed[name] = parser(raw_config.get(key, "").strip())
        except ValueError as exc:
            raise ConfigurationError(key, exc)

    section = f"{prefix}."
    for key in sorted(raw_config):
        if key.startswith(section) and key[len(section) :] not in spec:
            raise ConfigurationError(key, "unrecognized setting")

    return parsed
