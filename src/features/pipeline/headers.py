"""Case-insensitive, order-preserving HTTP header collection."""

from collections.abc import Iterable, Iterator, Mapping


class HttpHeaders:
    """Ordered header collection with case-insensitive names.

    The casing of the first occurrence of a name is kept for the wire.
    ``set`` replaces a value, ``add`` merges a duplicate into a comma-joined
    value as allowed by RFC 9110.
    """

    def __init__(
        self,
        headers: Mapping[str, str] | Iterable[tuple[str, str]] | None = None,
    ) -> None:
        self._entries: dict[str, tuple[str, str]] = {}
        if headers is None:
            return
        items = headers.items() if isinstance(headers, Mapping) else headers
        for name, value in items:
            self.add(name, value)

    def set(self, name: str, value: str) -> None:
        """Set a header, replacing any existing value."""
        key = name.lower()
        existing = self._entries.get(key)
        self._entries[key] = (existing[0] if existing else name, str(value))

    def add(self, name: str, value: str) -> None:
        """Add a header, merging with an existing value of the same name."""
        key = name.lower()
        existing = self._entries.get(key)
        if existing is None:
            self._entries[key] = (name, str(value))
        else:
            self._entries[key] = (existing[0], f"{existing[1]}, {value}")

    def get(self, name: str, default: str | None = None) -> str | None:
        """Get a header value by name."""
        entry = self._entries.get(name.lower())
        return entry[1] if entry else default

    def contains(self, name: str) -> bool:
        """Check whether a header is present."""
        return name.lower() in self._entries

    def remove(self, name: str) -> bool:
        """Remove a header.

        Returns:
            True if the header was present.
        """
        return self._entries.pop(name.lower(), None) is not None

    def raw_headers(self) -> dict[str, str]:
        """Get headers as a plain dict with their original casing."""
        return dict(self._entries.values())

    def to_json(self) -> dict[str, str]:
        """Get headers keyed by lower-cased name."""
        return {key: value for key, (_, value) in self._entries.items()}

    def clone(self) -> "HttpHeaders":
        """Create an independent copy."""
        copy = HttpHeaders()
        copy._entries = dict(self._entries)  # noqa: SLF001
        return copy

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.contains(name)

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HttpHeaders):
            return NotImplemented
        return self.to_json() == other.to_json()

    def __repr__(self) -> str:
        return f"HttpHeaders({self.raw_headers()!r})"
