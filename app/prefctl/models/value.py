"""Typed preference values.

Preference stores hold dynamically typed values. This module pins them
down to a closed set of kinds so comparisons never coerce across types:
``true`` is not ``1``, ``1`` is not ``1.0`` and ``"1"`` is neither.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

PrefData = bool | int | float | str | tuple["PrefValue", ...]


class ValueKind(str, Enum):
    """Kind tag of a preference value."""

    BOOLEAN = "bool"
    INTEGER = "int"
    FLOAT = "float"
    STRING = "string"
    LIST = "list"


# Exact Python type expected for each scalar kind. bool is a subclass of
# int, so isinstance() is not strict enough here.
_SCALAR_TYPES: dict[ValueKind, type] = {
    ValueKind.BOOLEAN: bool,
    ValueKind.INTEGER: int,
    ValueKind.FLOAT: float,
    ValueKind.STRING: str,
}


@dataclass(frozen=True, slots=True)
class PrefValue:
    """A preference value tagged with its kind.

    Equality compares the kind first, so two values of different kinds are
    never equal. Lists compare element-wise under the same rule.

    Attributes:
        kind: The value's kind tag.
        data: The Python payload; a tuple of PrefValue for lists.
    """

    kind: ValueKind
    data: PrefData

    def __post_init__(self) -> None:
        """Validate that the payload matches the kind."""
        if self.kind == ValueKind.LIST:
            if not isinstance(self.data, tuple) or not all(
                isinstance(item, PrefValue) for item in self.data
            ):
                msg = "List values must be a tuple of PrefValue"
                raise TypeError(msg)
            return
        expected = _SCALAR_TYPES[self.kind]
        if type(self.data) is not expected:
            actual = type(self.data).__name__
            msg = f"{self.kind.value} value must be {expected.__name__}, got {actual}"
            raise TypeError(msg)

    @classmethod
    def boolean(cls, value: bool) -> PrefValue:
        return cls(ValueKind.BOOLEAN, value)

    @classmethod
    def integer(cls, value: int) -> PrefValue:
        return cls(ValueKind.INTEGER, value)

    @classmethod
    def float_(cls, value: float) -> PrefValue:
        return cls(ValueKind.FLOAT, value)

    @classmethod
    def string(cls, value: str) -> PrefValue:
        return cls(ValueKind.STRING, value)

    @classmethod
    def list_(cls, items: list[PrefValue] | tuple[PrefValue, ...]) -> PrefValue:
        return cls(ValueKind.LIST, tuple(items))

    @classmethod
    def from_python(cls, obj: Any) -> PrefValue:
        """Build a value from a plain Python object (e.g. parsed TOML).

        Args:
            obj: A bool, int, float, str, or list/tuple of those.

        Returns:
            The corresponding PrefValue.

        Raises:
            TypeError: If the object (or a list element) has an unsupported type.
        """
        if isinstance(obj, PrefValue):
            return obj
        # bool must be checked before int
        if isinstance(obj, bool):
            return cls.boolean(obj)
        if isinstance(obj, int):
            return cls.integer(obj)
        if isinstance(obj, float):
            return cls.float_(obj)
        if isinstance(obj, str):
            return cls.string(obj)
        if isinstance(obj, list | tuple):
            return cls.list_([cls.from_python(item) for item in obj])
        msg = f"Unsupported preference value type: {type(obj).__name__}"
        raise TypeError(msg)

    def to_python(self) -> Any:
        """Convert back to a plain Python object (lists become lists)."""
        if self.kind == ValueKind.LIST:
            return [item.to_python() for item in self.data]  # type: ignore[union-attr]
        return self.data

    def to_json(self) -> dict[str, Any]:
        """Serialize to a tagged JSON-compatible dictionary.

        The tag survives the round trip, which plain JSON would lose for
        floats with integral values such as ``2.0``.
        """
        if self.kind == ValueKind.LIST:
            payload: Any = [item.to_json() for item in self.data]  # type: ignore[union-attr]
        else:
            payload = self.data
        return {"type": self.kind.value, "value": payload}

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> PrefValue:
        """Deserialize from the tagged form produced by :meth:`to_json`.

        Raises:
            KeyError: If the type or value field is missing.
            ValueError: If the type tag is unknown.
            TypeError: If the payload does not match the tag.
        """
        kind = ValueKind(data["type"])
        raw = data["value"]
        if kind == ValueKind.LIST:
            if not isinstance(raw, list):
                msg = "List value payload must be a JSON array"
                raise TypeError(msg)
            return cls.list_([cls.from_json(item) for item in raw])
        if kind == ValueKind.FLOAT and type(raw) is int:
            raw = float(raw)
        return cls(kind, raw)

    def display(self) -> str:
        """Render the value for humans."""
        if self.kind == ValueKind.BOOLEAN:
            return "true" if self.data else "false"
        if self.kind == ValueKind.LIST:
            inner = ", ".join(item.display() for item in self.data)  # type: ignore[union-attr]
            return f"[{inner}]"
        if self.kind == ValueKind.STRING:
            return f'"{self.data}"'
        return str(self.data)

    def __str__(self) -> str:
        return self.display()
