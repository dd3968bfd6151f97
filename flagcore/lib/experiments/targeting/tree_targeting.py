import operator

from typing import Any
from typing import Callable
from typing import Dict
from typing import List
from typing import Optional
from typing import Tuple
from typing import Type

from flagcore.lib.experiments.targeting.base import Targeting
from flagcore.lib.experiments.targeting.base import TargetingContext
from flagcore.lib.experiments.version import padded_version_string
from flagcore.lib.url import eval_simple_url_target
from flagcore.lib.url import is_url_targeted
from flagcore.lib.value import new
from flagcore.lib.value import NumValue
from flagcore.lib.value import StrValue
from flagcore.lib.value import Value
from flagcore.lib.value import ValueType


class TargetingNodeError(Exception):
    pass


class UnknownTargetingOperatorError(Exception):
    pass


def _field_name(input_node: Dict[str, Any], node_name: str) -> str:
    field = input_node.get("field")
    if not isinstance(field, str) or not field:
        raise ValueError(f"{node_name} expects input key 'field' to be a non-empty string.")
    return field


class EqualNode(Targeting):
    """Used to determine whether an attribute equals a single value or a value in a list.

    :param input_node: dict with the field name and value or list
    of values to accept for targeting. This dict will contain two keys:
    "field", and one of "value" or "values". If "value" is provided,
    a single value is expected. If "values" is instead provided, then
    a list of values is expected.

    A full EqualNode in a targeting tree configuration looks like this::

        {
            EQ:{
                field: <field_name>
                value: <accepted_value>
            }
        }

    Values are compared with :py:func:`flagcore.lib.value.equal`, so the
    number ``10`` does not equal the text ``"10"``. A field missing from the
    attributes equals ``None``.

    """

    def __init__(self, input_node: Dict[str, Any]):
        if len(input_node) != 2:
            raise ValueError("EqualNode expects exactly two fields.")

        self._accepted_key = _field_name(input_node, "EqualNode")

        if "values" in input_node:
            if not isinstance(input_node["values"], list):
                raise TypeError("EqualNode expects input key 'values' to be a list.")
            self._accepted_values = [new(v) for v in input_node["values"]]
        elif "value" in input_node:
            self._accepted_values = [new(input_node["value"])]
        else:
            raise ValueError("EqualNode expects input key 'value' or 'values'.")

    def evaluate(self, context: TargetingContext) -> bool:
        candidate_value = context.attribute(self._accepted_key)
        return candidate_value in self._accepted_values


class AllNode(Targeting):
    """All child nodes return True.

    :param input_node: a list of Targeting nodes

    """

    def __init__(self, input_node: List[Dict[str, Any]]):
        if not isinstance(input_node, list):
            raise TypeError("Input to AllNode expects a list.")

        self._children = [create_targeting_tree(node) for node in input_node]

    def evaluate(self, context: TargetingContext) -> bool:
        return all(node.evaluate(context) for node in self._children)


class AnyNode(Targeting):
    """At least one child node return True.

    :param input_node: a list of Targeting nodes

    """

    def __init__(self, input_node: List[Dict[str, Any]]):
        if not isinstance(input_node, list):
            raise TypeError("Input to AnyNode expects a list.")

        self._children = [create_targeting_tree(node) for node in input_node]

    def evaluate(self, context: TargetingContext) -> bool:
        return any(node.evaluate(context) for node in self._children)


class NotNode(Targeting):
    """Boolean 'not' operator.

    :param input_node: a Targeting node

    """

    def __init__(self, input_node: Dict[str, Any]):
        if not isinstance(input_node, dict):
            raise TypeError("Input to NotNode expects a dictionary")

        if len(input_node) != 1:
            raise ValueError("NotNode expects exactly one field.")

        self._child = create_targeting_tree(input_node)

    def evaluate(self, context: TargetingContext) -> bool:
        return not self._child.evaluate(context)


class OverrideNode(Targeting):
    """Always return True/False."""

    def __init__(self, input_node: bool):
        self._return_value = input_node is True

    def evaluate(self, context: TargetingContext) -> bool:
        return self._return_value


def _ordered_operands(a: Value, b: Value) -> Optional[Tuple[Any, Any]]:
    # text compares with text, anything else is compared as numbers
    if isinstance(a, StrValue) and isinstance(b, StrValue):
        return a.value, b.value
    num_a = a.cast(ValueType.NUM)
    num_b = b.cast(ValueType.NUM)
    if not isinstance(num_a, NumValue) or not isinstance(num_b, NumValue):
        return None
    return num_a.value, num_b.value


class ComparisonNode(Targeting):
    """Comparison operators (ne, gt, ge, lt, le).

    ``ne`` is structural inequality. The ordering operators compare text
    with text, and otherwise compare both sides cast to numbers. A missing
    field, or a side with no numeric form, never matches.

    :param input_node: a Targeting node
    :param comparator: an operator from the :py:mod:`operator` module
    """

    def __init__(self, input_node: Dict[str, Any], comparator: Callable[[Any, Any], bool]):
        if len(input_node) != 2:
            raise ValueError("ComparisonNode expects exactly two fields.")

        if "value" not in input_node:
            raise ValueError("ComparisonNode expects input key 'value'.")

        self._accepted_key = _field_name(input_node, "ComparisonNode")
        self._accepted_value = new(input_node["value"])
        self.comparator = comparator

    def evaluate(self, context: TargetingContext) -> bool:
        candidate_value = context.attribute(self._accepted_key)

        if self.comparator is operator.ne:
            return candidate_value != self._accepted_value

        if candidate_value.type is ValueType.NULL or self._accepted_value.type is ValueType.NULL:
            return False

        operands = _ordered_operands(candidate_value, self._accepted_value)
        if operands is None:
            return False
        return self.comparator(*operands)


class VersionNode(Targeting):
    """Version comparison operators (veq, vne, vgt, vge, vlt, vle).

    The attribute is rendered as text and compared with the configured
    version after both are padded with
    :py:func:`~flagcore.lib.experiments.version.padded_version_string`.

    :param input_node: a Targeting node
    :param comparator: an operator from the :py:mod:`operator` module
    """

    def __init__(self, input_node: Dict[str, Any], comparator: Callable[[Any, Any], bool]):
        if len(input_node) != 2:
            raise ValueError("VersionNode expects exactly two fields.")

        if not isinstance(input_node.get("value"), str):
            raise ValueError("VersionNode expects input key 'value' to be a version string.")

        self._accepted_key = _field_name(input_node, "VersionNode")
        self._accepted_version = padded_version_string(input_node["value"])
        self.comparator = comparator

    def evaluate(self, context: TargetingContext) -> bool:
        candidate_value = context.attribute(self._accepted_key)
        if candidate_value.type is ValueType.NULL:
            return False

        candidate_text = candidate_value.cast(ValueType.STR)
        if not isinstance(candidate_text, StrValue):
            return False

        return self.comparator(padded_version_string(candidate_text.value), self._accepted_version)


class UrlNode(Targeting):
    """Match the request URL.

    :param input_node: either a simple URL pattern string, or a list of URL
        targets as accepted by :py:func:`flagcore.lib.url.is_url_targeted`.

    A context without a URL never matches.

    """

    def __init__(self, input_node: Any):
        if not isinstance(input_node, (str, list)):
            raise TypeError("UrlNode expects a pattern string or a list of URL targets.")

        self._targets = input_node

    def evaluate(self, context: TargetingContext) -> bool:
        if context.url is None:
            return False

        if isinstance(self._targets, str):
            return eval_simple_url_target(context.url, self._targets)
        return is_url_targeted(context.url, self._targets)


OPERATOR_NODE_TYPE_MAPPING: Dict[str, Type[Targeting]] = {
    "any": AnyNode,
    "all": AllNode,
    "eq": EqualNode,
    "not": NotNode,
    "override": OverrideNode,
    "gt": ComparisonNode,
    "ge": ComparisonNode,
    "lt": ComparisonNode,
    "le": ComparisonNode,
    "ne": ComparisonNode,
    "veq": VersionNode,
    "vne": VersionNode,
    "vgt": VersionNode,
    "vge": VersionNode,
    "vlt": VersionNode,
    "vle": VersionNode,
    "url": UrlNode,
}


def create_targeting_tree(input_node: Dict[str, Any]) -> Targeting:
    """Create a tree-based targeting evaluator.

    Processes decoded JSON to create a tree against which a
    :py:class:`~flagcore.lib.experiments.targeting.base.TargetingContext`
    can be evaluated to determine whether or not a user should be
    targeted for an experiment or feature rule.

    Each node is represented by a dict with one key which represents the
    operator. The value for the operator is either a dictionary (another
    node) or a list of dictionaries (each of which is another node).

    An example of a targeting tree config might look like:

    targeting_cfg = {
        'ALL':[
            {'ANY':[
                {'EQ': {'field': 'is_employee', 'value': True}},
                {'EQ': {'field': 'user.country', 'values': ['us', 'ca']}},
            ]},
            {'VGE': {'field': 'app_version', 'value': '2.4.0'}},
            {'GT': {'field': 'orders', 'value': 2}},
            {'URL': '*.example.com/checkout/*'},
        ]
    }

    In the above example, we see that all of the following conditions must be
    met in order for a user to be targeted:

    1. the user must be an employee or live in the US or Canada
    2. they must run version 2.4.0 of the app or later
    3. they must have placed more than two orders
    4. they must be on a checkout page

    """
    if not isinstance(input_node, dict) or not len(input_node) == 1:
        raise TargetingNodeError("Call to create_targeting_tree expects a single input key.")

    operator_name, input_node_value = list(input_node.items())[0]

    operator_name = operator_name.lower()

    if operator_name not in OPERATOR_NODE_TYPE_MAPPING:
        raise UnknownTargetingOperatorError(
            f"Unrecognized operator while constructing targeting tree: {operator_name}"
        )

    operator_node_type = OPERATOR_NODE_TYPE_MAPPING[operator_name]
    try:
        subnode: Targeting
        if issubclass(operator_node_type, ComparisonNode):
            subnode = operator_node_type(input_node_value, getattr(operator, operator_name))
        elif issubclass(operator_node_type, VersionNode):
            subnode = operator_node_type(input_node_value, getattr(operator, operator_name[1:]))
        else:
            subnode = operator_node_type(input_node_value)  # type: ignore
        return subnode
    except (TypeError, ValueError, AttributeError, OverflowError) as e:
        raise TargetingNodeError(f"Error while constructing targeting tree: {e}")
