from __future__ import annotations

from typing import Callable, Generic, Iterator, TypeVar

T = TypeVar("T")

# ============================================================================
# Entity registry
#
# Ordered get-or-create store shared by the dialect parsers. The registry owns
# every entity by id; edges and relationships only hold ids. Insertion order
# is the declaration order handed out to the factory.
# ============================================================================


class Registry(Generic[T]):
    def __init__(self) -> None:
        self._entries: dict[str, T] = {}

    def ensure(self, entity_id: str, factory: Callable[[str, int], T]) -> tuple[T, bool]:
        """Return the entity for `entity_id`, creating it if needed.

        `factory(entity_id, declared_order)` is only called on first sight.
        The second item of the result tells whether the entity was created.
        """
        existing = self._entries.get(entity_id)
        if existing is not None:
            return existing, False
        entity = factory(entity_id, len(self._entries))
        self._entries[entity_id] = entity
        return entity, True

    def get(self, entity_id: str) -> T | None:
        return self._entries.get(entity_id)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[T]:
        return iter(self._entries.values())

    def ids(self) -> list[str]:
        return list(self._entries)

    def values(self) -> list[T]:
        return list(self._entries.values())

    def as_dict(self) -> dict[str, T]:
        return dict(self._entries)
