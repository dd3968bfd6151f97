"""Variations forced from the request URL.

QA staff can pin an experiment to a variation by adding the experiment key
as a query parameter, e.g. ``https://example.com/?checkout-redesign=1``.

"""
import logging
import re

from typing import Optional
from typing import Tuple
from urllib.parse import parse_qs
from urllib.parse import SplitResult
from urllib.parse import urlsplit

from flagcore.lib.url import URL
from flagcore.lib.url import URL_TARGET_ERRORS_TOTAL


logger = logging.getLogger(__name__)

INTEGER_REGEX = re.compile(r"[+-]?[0-9]+")


def get_query_string_override(  # pylint: disable=redefined-builtin
    id: str, url: Optional[URL], num_variations: int
) -> Tuple[int, bool]:
    """Return the variation forced for experiment ``id`` by the URL query string.

    The parameter must appear exactly once and hold an integer in the range
    ``0 <= variation < num_variations``. A malformed URL is logged and never
    yields a variation.

    :returns: A ``(variation, found)`` pair. ``variation`` is 0 when
        nothing was found.

    """
    if url is None:
        return 0, False

    if isinstance(url, SplitResult):
        query = url.query
    else:
        try:
            query = urlsplit(url).query
        except ValueError:
            logger.error("Failed to parse URL for variation override: %s", url)
            URL_TARGET_ERRORS_TOTAL.labels("url").inc()
            return 0, False

    values = parse_qs(query, keep_blank_values=True).get(id)
    if values is None or len(values) > 1:
        return 0, False

    if not INTEGER_REGEX.fullmatch(values[0]):
        return 0, False

    variation = int(values[0])
    if variation < 0 or variation >= num_variations:
        logger.debug(
            "Ignoring out of range variation %d for experiment %s from URL", variation, id
        )
        return 0, False

    logger.debug("Force variation %d from URL querystring, experiment %s", variation, id)
    return variation, True
