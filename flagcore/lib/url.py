"""URL pattern matching for targeting rules.

Two kinds of URL target are supported. *Simple* targets are written the way
people type URLs, with ``*`` as a wildcard::

    example.com/pricing
    *.example.com/docs/*
    https://example.com/?utm_source=*
    /checkout#step-*

*Regex* targets are regular expressions searched for in the full URL.

"""
import logging
import re

from typing import Any
from typing import Dict
from typing import List
from typing import NamedTuple
from typing import Optional
from typing import Pattern
from typing import Sequence
from typing import Union
from urllib.parse import SplitResult
from urllib.parse import unquote
from urllib.parse import unquote_plus
from urllib.parse import urlsplit

from prometheus_client import Counter


logger = logging.getLogger(__name__)

PROM_PREFIX = "flagcore"

URL_TARGET_ERRORS_TOTAL = Counter(
    f"{PROM_PREFIX}_url_target_errors_total",
    "Total number of URL targets that could not be evaluated",
    [f"{PROM_PREFIX}_reason"],
)

# never valid in a hostname, so it cannot collide with real input
WILDCARD = "_____"
DEFAULT_SCHEME = "https"

SCHEME_REGEX = re.compile(r"^([^:/?]*)\.", re.IGNORECASE)
SPECIAL_REGEX = re.compile(r"([*.+?^${}()|\[\]\\])")
EDGE_SLASH_REGEX = re.compile(r"(^/|/$)")
BAD_ESCAPE_REGEX = re.compile(r"%(?![0-9a-fA-F]{2})")

URL = Union[str, SplitResult]


class ParsedURL(NamedTuple):
    """The parts of a URL compared by simple targets, with escapes decoded."""

    host: str
    path: str
    raw_query: str
    fragment: str


def parse_url(url: URL) -> ParsedURL:
    """Split a URL into the parts used for matching.

    :raises: :py:exc:`ValueError` if the URL is malformed.

    """
    if isinstance(url, SplitResult):
        parts = url
    else:
        if BAD_ESCAPE_REGEX.search(url):
            raise ValueError(f"invalid URL escape in {url!r}")
        parts = urlsplit(url)
    host = parts.netloc.rpartition("@")[2]
    return ParsedURL(host, unquote(parts.path), parts.query, unquote(parts.fragment))


def parse_query(raw_query: str) -> Dict[str, List[str]]:
    """Decode a query string into lists of values per key.

    Keys without a value map to an empty string.

    :raises: :py:exc:`ValueError` if a pair contains a semicolon or a
        malformed escape.

    """
    params: Dict[str, List[str]] = {}
    for pair in raw_query.split("&"):
        if not pair:
            continue
        if ";" in pair:
            raise ValueError("invalid semicolon separator in query")
        if BAD_ESCAPE_REGEX.search(pair):
            raise ValueError(f"invalid URL escape in {pair!r}")
        key, _, value = pair.partition("=")
        params.setdefault(unquote_plus(key), []).append(unquote_plus(value))
    return params


def _pattern_to_url(pattern: str) -> ParsedURL:
    # "example.com/x" has no scheme but a host, so make it parse as one
    pattern = SCHEME_REGEX.sub(DEFAULT_SCHEME + r"://\1.", pattern, count=1)
    pattern = pattern.replace("*", WILDCARD)
    expected = parse_url(pattern)
    if not expected.host:
        expected = expected._replace(host=WILDCARD)
    return expected


def eval_simple_url_target(actual: URL, pattern: str) -> bool:
    """Return whether a URL matches a simple, wildcarded URL pattern.

    Host and path are always compared. The fragment is compared only when
    the pattern has one. Every query parameter in the pattern must match
    the first value of the same parameter in the URL, a missing parameter
    being compared as empty text. All comparisons are case-insensitive and
    leading and trailing slashes on the path are optional.

    A malformed pattern or URL is logged and never matches.

    """
    try:
        expected = _pattern_to_url(pattern)
    except ValueError:
        logger.error("Failed to parse URL pattern: %s", pattern)
        URL_TARGET_ERRORS_TOTAL.labels("pattern").inc()
        return False

    try:
        parsed = parse_url(actual)
        actual_params = parse_query(parsed.raw_query)
    except ValueError:
        logger.error("Failed to parse actual URL: %s", actual)
        URL_TARGET_ERRORS_TOTAL.labels("url").inc()
        return False

    try:
        expected_params = parse_query(expected.raw_query)
    except ValueError:
        logger.error("Failed to parse expected URL query parameters: %s", expected.raw_query)
        URL_TARGET_ERRORS_TOTAL.labels("query").inc()
        return False

    comparisons = [(parsed.host, expected.host, False), (parsed.path, expected.path, True)]
    if expected.fragment:
        comparisons.append((parsed.fragment, expected.fragment, False))
    for param, expected_values in expected_params.items():
        actual_value = actual_params.get(param, [""])[0]
        comparisons.append((actual_value, expected_values[0], False))

    return all(
        _eval_simple_url_part(actual_part, expected_part, is_path)
        for actual_part, expected_part, is_path in comparisons
    )


def _eval_simple_url_part(actual: str, pattern: str, is_path: bool) -> bool:
    escaped = SPECIAL_REGEX.sub(r"\\\1", pattern)
    escaped = escaped.replace(WILDCARD, ".*")

    if is_path:
        escaped = EDGE_SLASH_REGEX.sub("", escaped)
        escaped = "/?" + escaped + "/?"

    regex = compile_url_regexp(escaped, re.IGNORECASE)
    if regex is None:
        return False
    return regex.fullmatch(actual) is not None


def compile_url_regexp(pattern: str, flags: int = 0) -> Optional[Pattern[str]]:
    """Compile a URL targeting regex, logging and returning None if it is invalid."""
    try:
        return re.compile(pattern, flags)
    except re.error as exc:
        logger.error("Failed to compile URL regexp %r: %s", pattern, exc)
        URL_TARGET_ERRORS_TOTAL.labels("regexp").inc()
        return None


def _url_text(url: URL) -> str:
    if isinstance(url, SplitResult):
        return url.geturl()
    return url


def is_url_targeted(url: URL, targets: Sequence[Dict[str, Any]]) -> bool:
    """Return whether a URL is selected by an ordered list of URL targets.

    Each target is a dict like::

        {"type": "simple", "pattern": "example.com/pricing", "include": True}

    ``type`` is one of ``simple`` (see :py:func:`eval_simple_url_target`) or
    ``regex`` (searched for in the full URL). A matching target with
    ``include`` set to false always rejects the URL. Otherwise the URL is
    targeted if any include target matches, or if there are no include
    targets at all. An empty target list targets nothing.

    Malformed targets are logged and skipped.

    """
    if not targets:
        return False

    has_include_rules = False
    is_included = False
    for target in targets:
        if not isinstance(target, dict) or not isinstance(target.get("pattern"), str):
            logger.error("Invalid URL target, skipping: %r", target)
            continue

        target_type = target.get("type", "simple")
        if target_type == "regex":
            regex = compile_url_regexp(target["pattern"])
            matched = regex is not None and regex.search(_url_text(url)) is not None
        elif target_type == "simple":
            matched = eval_simple_url_target(url, target["pattern"])
        else:
            logger.error("Unknown URL target type %r, skipping", target_type)
            continue

        if target.get("include", True):
            has_include_rules = True
            if matched:
                is_included = True
        elif matched:
            return False

    return is_included or not has_include_rules
