"""In-memory subject label table."""

from __future__ import annotations

import random
from collections.abc import Callable, Mapping
from threading import Lock

_OWNER_NAMES = ("Alice", "Bob", "Gav", "Ionut")
_GOODS = ("Book", "Coffee", "Tea", "Drug", "Movie")
_SHOP_KINDS = ("Shop", "Store", "Emporium", "Outlet")


def random_shop_name(rng: random.Random | None = None) -> str:
    chooser = rng or random
    return f"{chooser.choice(_OWNER_NAMES)}'s {chooser.choice(_GOODS)} {chooser.choice(_SHOP_KINDS)}"


class InMemoryLabelTable:
    """Maps subject ids to labels, generating a label the first time an id is seen.

    Inserts are insert-if-absent: once a label is stored it never changes, so
    overlapping fetch completions resolve the same id to the same label.
    """

    def __init__(
        self,
        *,
        name_factory: Callable[[int], str] | None = None,
        initial: Mapping[int, str] | None = None,
    ) -> None:
        self._labels: dict[int, str] = dict(initial or {})
        self._name_factory = name_factory or (lambda _subject_id: random_shop_name())
        self._lock = Lock()

    def resolve(self, subject_id: int) -> str:
        with self._lock:
            label = self._labels.get(subject_id)
            if label is None:
                label = self._labels.setdefault(subject_id, self._name_factory(subject_id))
            return label

    __call__ = resolve

    def insert_if_absent(self, subject_id: int, label: str) -> str:
        """Store ``label`` unless one exists; return the stored label."""
        with self._lock:
            return self._labels.setdefault(subject_id, label)

    def snapshot(self) -> dict[int, str]:
        with self._lock:
            return dict(self._labels)


__all__ = ["InMemoryLabelTable", "random_shop_name"]
