# pylint: disable=invalid-name
"""Dynamic values for attributes and condition operands.

Feature rules and user attributes arrive as loosely typed data. Before they
are compared they are projected into a small closed algebra of six variants:
null, boolean, number, text, array and object. Numbers are always stored as
floats, so ``Num(10)`` and ``Num(10.0)`` are the same value.

.. doctest::

    >>> from flagcore.lib import value
    >>> attrs = value.new({"user": {"id": 10, "tags": ["beta", "new"]}})
    >>> attrs.path("user", "id")
    Num(10.0)
    >>> attrs.path("user", "tags").cast(value.ValueType.STR)
    Str('beta,new')
    >>> attrs.path("user", "missing")
    Null()

No operation in this module raises or logs. Anything that cannot be
represented becomes :py:data:`NULL`.

"""
import decimal
import numbers
import re

from collections.abc import Mapping
from collections.abc import Sequence
from contextlib import contextmanager
from enum import Enum
from typing import Any
from typing import Callable
from typing import Dict
from typing import Iterator
from typing import Optional
from typing import Set
from typing import Tuple


class ValueType(Enum):
    NULL = "null"
    BOOL = "bool"
    NUM = "num"
    STR = "str"
    ARR = "arr"
    OBJ = "obj"


class Value:
    """Base class of the six value variants.

    Values are immutable. Use :py:func:`new` or the variant constructors to
    make one.

    """

    __slots__ = ()

    type: ValueType

    def cast(self, target: ValueType) -> "Value":
        """Coerce this value to the ``target`` variant.

        Coercions that have no meaning return :py:data:`NULL`.

        """
        caster = _CASTS.get((self.type, target), _to_null)
        return caster(self)


class NullValue(Value):
    __slots__ = ()

    type = ValueType.NULL

    _instance: Optional["NullValue"] = None

    def __new__(cls) -> "NullValue":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __eq__(self, other: object) -> bool:
        return isinstance(other, NullValue)

    def __hash__(self) -> int:
        return hash(ValueType.NULL)

    def __str__(self) -> str:
        return "null"

    def __repr__(self) -> str:
        return "Null()"


class BoolValue(Value):
    __slots__ = ("value",)

    type = ValueType.BOOL

    def __init__(self, value: bool):
        object.__setattr__(self, "value", bool(value))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("values are immutable")

    def __eq__(self, other: object) -> bool:
        return isinstance(other, BoolValue) and self.value is other.value

    def __hash__(self) -> int:
        return hash((ValueType.BOOL, self.value))

    def __str__(self) -> str:
        return "true" if self.value else "false"

    def __repr__(self) -> str:
        return f"Bool({self.value!r})"


class NumValue(Value):
    __slots__ = ("value",)

    type = ValueType.NUM

    def __init__(self, value: Any):
        object.__setattr__(self, "value", float(value))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("values are immutable")

    def __eq__(self, other: object) -> bool:
        return isinstance(other, NumValue) and self.value == other.value

    def __hash__(self) -> int:
        return hash((ValueType.NUM, self.value))

    def __str__(self) -> str:
        return format_number(self.value)

    def __repr__(self) -> str:
        return f"Num({self.value!r})"


class StrValue(Value):
    __slots__ = ("value",)

    type = ValueType.STR

    def __init__(self, value: str):
        # str subclasses (e.g. str-valued enums) are stored as their raw text
        object.__setattr__(self, "value", str.__str__(value))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("values are immutable")

    def __eq__(self, other: object) -> bool:
        return isinstance(other, StrValue) and self.value == other.value

    def __hash__(self) -> int:
        return hash((ValueType.STR, self.value))

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"Str({self.value!r})"


class ArrValue(Value, Sequence):
    """An ordered, read-only sequence of values.

    Items given to the constructor are projected with :py:func:`new`.

    """

    __slots__ = ("_items",)

    type = ValueType.ARR

    def __init__(self, items: Any = ()):
        object.__setattr__(self, "_items", tuple(new(item) for item in items))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("values are immutable")

    def __getitem__(self, index: Any) -> Any:
        if isinstance(index, slice):
            return ArrValue(self._items[index])
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Value]:
        return iter(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ArrValue):
            return False
        if len(self._items) != len(other._items):
            return False
        return all(a == b for a, b in zip(self._items, other._items))

    def __hash__(self) -> int:
        return hash((ValueType.ARR, self._items))

    def __str__(self) -> str:
        return ",".join(str(item) for item in self._items)

    def __repr__(self) -> str:
        return "Arr({})".format(", ".join(repr(item) for item in self._items))


class ObjValue(Value, Mapping):
    """A read-only mapping of text keys to values.

    Field values given to the constructor are projected with
    :py:func:`new`. Key order has no effect on equality or lookup.

    Keys must be text. Unlike :py:func:`new`, which degrades a mapping with
    other keys to :py:data:`NULL`, the constructor raises
    :py:exc:`TypeError` for them.

    """

    __slots__ = ("_fields",)

    type = ValueType.OBJ

    def __init__(self, fields: Any = ()):
        fields = dict(fields)
        for key in fields:
            if not isinstance(key, str):
                raise TypeError(f"object keys must be text, not {type(key).__name__}")
        object.__setattr__(self, "_fields", {key: new(field) for key, field in fields.items()})

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("values are immutable")

    def __getitem__(self, key: str) -> Value:
        return self._fields[key]

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ObjValue):
            return False
        if self._fields.keys() != other._fields.keys():
            return False
        return all(field == other._fields[key] for key, field in self._fields.items())

    def __hash__(self) -> int:
        return hash((ValueType.OBJ, frozenset(self._fields.items())))

    def __str__(self) -> str:
        return "Object"

    def __repr__(self) -> str:
        fields = ", ".join(f"{key!r}: {field!r}" for key, field in self._fields.items())
        return f"Obj({{{fields}}})"

    def path(self, *keys: str) -> Value:
        """Walk nested objects by successive keys.

        Returns :py:data:`NULL` when a key is absent or when there are keys
        left but the current value is not an object.

        """
        current: Value = self
        for key in keys:
            if not isinstance(current, ObjValue):
                return NULL
            field = current._fields.get(key)
            if field is None:
                return NULL
            current = field
        return current


NULL = NullValue()
TRUE = BoolValue(True)
FALSE = BoolValue(False)


def Null() -> NullValue:  # noqa: D401
    """The null value."""
    return NULL


def Bool(flag: Any) -> BoolValue:  # noqa: D401
    """A boolean."""
    return TRUE if flag else FALSE


def Num(number: Any) -> NumValue:  # noqa: D401
    """A number, stored as a float whatever numeric type is given."""
    return NumValue(number)


def Str(text: str) -> StrValue:  # noqa: D401
    """A text value."""
    return StrValue(text)


def Arr(*items: Any) -> ArrValue:  # noqa: D401
    """An array of the given items, each projected with :py:func:`new`."""
    return ArrValue(items)


def Obj(fields: Any = ()) -> ObjValue:  # noqa: D401
    """An object of the given fields, each value projected with :py:func:`new`."""
    return ObjValue(fields)


def is_null(v: Value) -> bool:
    return isinstance(v, NullValue)


def is_bool(v: Value) -> bool:
    return isinstance(v, BoolValue)


def is_num(v: Value) -> bool:
    return isinstance(v, NumValue)


def is_str(v: Value) -> bool:
    return isinstance(v, StrValue)


def is_arr(v: Value) -> bool:
    return isinstance(v, ArrValue)


def is_obj(v: Value) -> bool:
    return isinstance(v, ObjValue)


def equal(a: Value, b: Value) -> bool:
    """Return whether two values are structurally equal.

    Values of different variants are never equal, so ``Str("10")`` is not
    equal to ``Num(10)``.

    """
    return a == b


def cast(v: Value, target: ValueType) -> Value:
    """Coerce ``v`` to the ``target`` variant; see :py:meth:`Value.cast`."""
    return v.cast(target)


def new(x: Any) -> Value:
    """Project an arbitrary Python object into a value.

    The object is checked against these shapes, in order:

    1. a :py:class:`Value` is returned as-is
    2. ``None`` becomes null
    3. ``bool`` becomes a boolean
    4. real numbers and decimals that fit in a float become numbers
    5. ``str`` and its subclasses become text
    6. mappings with text keys become objects
    7. any other sequence (not bytes) becomes an array

    Anything else, including a container that contains itself, becomes null.

    """
    return _project(x, set())


def _project(x: Any, in_progress: Set[int]) -> Value:
    if isinstance(x, Value):
        return x
    if x is None:
        return NULL
    if isinstance(x, bool):
        return Bool(x)
    if isinstance(x, (numbers.Real, decimal.Decimal)):
        try:
            return NumValue(x)
        except (OverflowError, ValueError):
            # ints beyond float range and signaling NaNs have no float form
            return NULL
    if isinstance(x, str):
        return StrValue(x)
    if isinstance(x, Mapping):
        if not all(isinstance(key, str) for key in x):
            return NULL
        with _visiting(x, in_progress) as fresh:
            if not fresh:
                return NULL
            return ObjValue({key: _project(field, in_progress) for key, field in x.items()})
    if isinstance(x, Sequence) and not isinstance(x, (bytes, bytearray, memoryview)):
        with _visiting(x, in_progress) as fresh:
            if not fresh:
                return NULL
            return ArrValue([_project(item, in_progress) for item in x])
    return NULL


@contextmanager
def _visiting(container: Any, in_progress: Set[int]) -> Iterator[bool]:
    # yields False when the container is already on the projection path
    key = id(container)
    if key in in_progress:
        yield False
        return
    in_progress.add(key)
    try:
        yield True
    finally:
        in_progress.discard(key)


def format_number(number: float) -> str:
    """Render a float as the shortest decimal text that reads back the same.

    Whole numbers have no fractional part (``10.0`` is ``"10"``) and no
    exponent notation is used.

    """
    if number != number:
        return "NaN"
    if number in (float("inf"), float("-inf")):
        return "+Inf" if number > 0 else "-Inf"
    text = format(decimal.Decimal(repr(number)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


_DECIMAL_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def _to_null(v: Value) -> Value:
    return NULL


def _identity(v: Value) -> Value:
    return v


def _str_to_num(v: StrValue) -> Value:
    text = v.value.strip()
    if not text:
        return NumValue(0)
    if not _DECIMAL_RE.fullmatch(text):
        return NULL
    return NumValue(float(text))


def _arr_to_num(v: ArrValue) -> Value:
    if len(v) == 0:
        return NumValue(0)
    if len(v) == 1:
        return v[0].cast(ValueType.NUM)
    return NULL


def _arr_to_str(v: ArrValue) -> Value:
    parts = []
    for item in v:
        text = item.cast(ValueType.STR)
        if not isinstance(text, StrValue):
            return NULL
        parts.append(text.value)
    return StrValue(",".join(parts))


_CASTS: Dict[Tuple[ValueType, ValueType], Callable[[Any], Value]] = {
    (ValueType.NULL, ValueType.BOOL): lambda v: FALSE,
    (ValueType.BOOL, ValueType.BOOL): _identity,
    (ValueType.NUM, ValueType.BOOL): lambda v: Bool(v.value != 0),
    (ValueType.STR, ValueType.BOOL): lambda v: Bool(v.value != ""),
    (ValueType.ARR, ValueType.BOOL): lambda v: TRUE,
    (ValueType.OBJ, ValueType.BOOL): lambda v: TRUE,
    (ValueType.NULL, ValueType.NUM): lambda v: NumValue(0),
    (ValueType.BOOL, ValueType.NUM): lambda v: NumValue(1 if v.value else 0),
    (ValueType.NUM, ValueType.NUM): _identity,
    (ValueType.STR, ValueType.NUM): _str_to_num,
    (ValueType.ARR, ValueType.NUM): _arr_to_num,
    (ValueType.OBJ, ValueType.NUM): _to_null,
    (ValueType.NULL, ValueType.STR): lambda v: StrValue("null"),
    (ValueType.BOOL, ValueType.STR): lambda v: StrValue(str(v)),
    (ValueType.NUM, ValueType.STR): lambda v: StrValue(str(v)),
    (ValueType.STR, ValueType.STR): _identity,
    (ValueType.ARR, ValueType.STR): _arr_to_str,
    (ValueType.OBJ, ValueType.STR): _to_null,
    (ValueType.ARR, ValueType.ARR): _identity,
    (ValueType.OBJ, ValueType.OBJ): _identity,
}
