import logging

from typing import Any
from typing import Optional

from flagcore.lib.config import ConfigNamespace
from flagcore.lib.experiments.overrides import get_query_string_override
from flagcore.lib.url import URL
from flagcore.lib.value import new
from flagcore.lib.value import ObjValue
from flagcore.lib.value import Value


logger = logging.getLogger(__name__)


class TargetingContext:
    """The user attributes and request URL that targeting is evaluated against.

    :param attributes: A mapping of attribute names to values. It is
        projected into an :py:class:`~flagcore.lib.value.ObjValue`; anything
        that is not a mapping is replaced by an empty object.
    :param url: The URL of the current request, if there is one.
    :param query_overrides: Whether QA users may force variations with URL
        query parameters.

    """

    def __init__(
        self, attributes: Any = None, url: Optional[URL] = None, query_overrides: bool = True
    ):
        projected = new(attributes) if attributes is not None else ObjValue()
        if not isinstance(projected, ObjValue):
            logger.warning(
                "Targeting attributes must be a mapping, got %s",
                type(attributes).__name__,
                extra={"attributes": projected},
            )
            projected = ObjValue()
        self.attributes: ObjValue = projected
        self.url = url
        self.query_overrides = query_overrides

    @classmethod
    def from_settings(
        cls, settings: ConfigNamespace, attributes: Any = None, url: Optional[URL] = None
    ) -> "TargetingContext":
        """Make a context honoring parsed :py:mod:`flagcore.settings`."""
        return cls(attributes, url, query_overrides=settings.query_overrides)

    def attribute(self, field: str) -> Value:
        """Look up an attribute by name; dots descend into nested objects."""
        return self.attributes.path(*field.split("."))

    def forced_variation(self, experiment_key: str, num_variations: int) -> Optional[int]:
        """Return the variation forced by the URL query string, if allowed and present."""
        if not self.query_overrides:
            return None
        variation, found = get_query_string_override(experiment_key, self.url, num_variations)
        if not found:
            return None
        return variation


class Targeting:
    """Base targeting interface for experiment targeting."""

    def evaluate(self, context: TargetingContext) -> bool:
        """Evaluate whether the context matches the expected values for targeting."""
        raise NotImplementedError
