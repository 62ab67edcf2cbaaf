"""Typed key/value capsule for schema-less ``extensions`` maps."""

from collections.abc import Mapping
from typing import Any, Iterator

from errors import InvalidInputError

_MISSING = object()


class Extensions(Mapping):
    """Read-mostly mapping with accessors that check the stored type.

    Values must be JSON-compatible. Use ``with_values`` to derive a modified
    copy; instances themselves are never mutated after construction.
    """

    def __init__(self, data: Mapping[str, Any] | None = None):
        self._data: dict[str, Any] = dict(data or {})

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other) -> bool:
        if isinstance(other, Extensions):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"Extensions({self._data!r})"

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    def with_values(self, **values: Any) -> "Extensions":
        return Extensions({**self._data, **values})

    def _typed(self, key: str, types: tuple[type, ...], default: Any) -> Any:
        value = self._data.get(key, _MISSING)
        if value is _MISSING or value is None:
            if default is _MISSING:
                raise InvalidInputError(f"Extension '{key}' is not set")
            return default
        # bool is an int subclass; keep them apart
        if isinstance(value, bool) and bool not in types:
            raise InvalidInputError(f"Extension '{key}' is bool, expected {types[0].__name__}")
        if not isinstance(value, types):
            raise InvalidInputError(
                f"Extension '{key}' is {type(value).__name__}, expected {types[0].__name__}"
            )
        return value

    def get_str(self, key: str, default: Any = _MISSING) -> str:
        return self._typed(key, (str,), default)

    def get_int(self, key: str, default: Any = _MISSING) -> int:
        return self._typed(key, (int,), default)

    def get_float(self, key: str, default: Any = _MISSING) -> float:
        value = self._typed(key, (float, int), default)
        return float(value) if value is not None else value

    def get_bool(self, key: str, default: Any = _MISSING) -> bool:
        return self._typed(key, (bool,), default)

    def get_list(self, key: str, default: Any = _MISSING) -> list:
        return self._typed(key, (list,), default)

    def get_dict(self, key: str, default: Any = _MISSING) -> dict:
        return self._typed(key, (dict,), default)
