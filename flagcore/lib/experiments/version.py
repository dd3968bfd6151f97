"""Version string ordering.

Versions are compared by turning them into padded strings whose plain string
ordering agrees with semantic version ordering:

.. doctest::

    >>> from flagcore.lib.experiments.version import padded_version_string
    >>> padded_version_string("v1.2.3-rc.1+build123")
    '    1-    2-    3-rc-    1'
    >>> padded_version_string("9.0.0") < padded_version_string("10.0.0")
    True
    >>> padded_version_string("1.0.0-beta") < padded_version_string("1.0.0")
    True

"""
import re

from typing import Any


VERSION_STRIP_REGEX = re.compile(r"(^v|\+.*$)")
VERSION_SPLIT_REGEX = re.compile(r"[-.]")
VERSION_NUMBER_REGEX = re.compile(r"^[0-9]+$")

# "~" sorts after every other printable ASCII character
RELEASE_MARKER = "~"
NUMBER_WIDTH = 5


def padded_version_string(version: str) -> str:
    """Return a form of ``version`` for ordinal comparison, not for display.

    The leading ``v`` and any build metadata are dropped. A release with no
    pre-release tag gets a trailing marker so that ``1.0.0`` sorts after
    ``1.0.0-beta``. Numeric parts are left-padded with spaces so that ``9``
    sorts before ``10``.

    """
    stripped = VERSION_STRIP_REGEX.sub("", version)
    parts = VERSION_SPLIT_REGEX.split(stripped)

    if len(parts) == 3:
        parts.append(RELEASE_MARKER)

    return "-".join(
        part.rjust(NUMBER_WIDTH, " ") if VERSION_NUMBER_REGEX.match(part) else part
        for part in parts
    )


def _version_text(version: Any) -> str:
    if isinstance(version, (int, float)) and not isinstance(version, bool):
        return str(version)
    if not version or not isinstance(version, str):
        return "0"
    return version


def compare_versions(a: Any, b: Any) -> int:
    """Compare two versions, returning -1, 0 or 1.

    Numbers are compared as their text. Empty or non-text versions count
    as ``"0"``.

    """
    padded_a = padded_version_string(_version_text(a))
    padded_b = padded_version_string(_version_text(b))
    if padded_a < padded_b:
        return -1
    if padded_a > padded_b:
        return 1
    return 0
