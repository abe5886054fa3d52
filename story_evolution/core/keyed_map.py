"""
Name-keyed map used for character arcs and relationship states.

Keys are normalized (surrounding whitespace stripped, inner runs collapsed,
lowercased) so "Mara", " mara " and "MARA" address the same entry. The values
keep whatever display name they carry.

Callers persist state as plain JSON, and older payloads stored these maps as
arrays of [key, value] pairs. `from_serialized` accepts either that form or a
plain object.
"""

from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    MutableMapping,
    Optional,
    Tuple,
    TypeVar,
    Union,
)

V = TypeVar("V")


def normalize_key(name: Any) -> str:
    """Normalize a character name into a map key."""
    return " ".join(str(name).split()).lower()


class NameKeyedMap(MutableMapping[str, V]):
    """Mutable mapping whose keys are case- and whitespace-insensitive."""

    def __init__(self, items: Optional[Union[Mapping[str, V], Iterable[Tuple[str, V]]]] = None):
        self._data: Dict[str, V] = {}
        if items is None:
            return
        pairs = items.items() if isinstance(items, Mapping) else items
        for key, value in pairs:
            self[key] = value

    def __getitem__(self, key: str) -> V:
        return self._data[normalize_key(key)]

    def __setitem__(self, key: str, value: V) -> None:
        normalized = normalize_key(key)
        if not normalized:
            raise KeyError("Empty name cannot be used as a key")
        self._data[normalized] = value

    def __delitem__(self, key: str) -> None:
        del self._data[normalize_key(key)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return normalize_key(key) in self._data

    def __repr__(self) -> str:
        return f"NameKeyedMap({self._data!r})"

    def to_pairs(self, value_serializer: Optional[Callable[[V], Any]] = None) -> List[List[Any]]:
        """Serialize as an array of [key, value] pairs."""
        serialize = value_serializer or (lambda v: v)
        return [[key, serialize(value)] for key, value in self._data.items()]

    def to_dict(self, value_serializer: Optional[Callable[[V], Any]] = None) -> Dict[str, Any]:
        """Serialize as a plain object keyed by normalized name."""
        serialize = value_serializer or (lambda v: v)
        return {key: serialize(value) for key, value in self._data.items()}

    @classmethod
    def from_serialized(
        cls,
        data: Any,
        value_loader: Optional[Callable[[Any], V]] = None,
    ) -> "NameKeyedMap[V]":
        """
        Rebuild a map from either serialized form.

        Args:
            data: None, a mapping, or a list of [key, value] pairs
            value_loader: Optional callable converting each raw value

        Raises:
            ValueError: If a list entry is not a two-element pair
            TypeError: If data is neither a mapping nor a list
        """
        loaded: NameKeyedMap[V] = cls()
        if data is None:
            return loaded

        if isinstance(data, Mapping):
            pairs: Iterable[Tuple[Any, Any]] = data.items()
        elif isinstance(data, (list, tuple)):
            pairs = []
            for entry in data:
                if not isinstance(entry, (list, tuple)) or len(entry) != 2:
                    raise ValueError(f"Expected [key, value] pair, got {entry!r}")
                pairs.append((entry[0], entry[1]))
        else:
            raise TypeError(f"Cannot load NameKeyedMap from {type(data).__name__}")

        for key, value in pairs:
            loaded[key] = value_loader(value) if value_loader else value
        return loaded
