"""Subject label resolution port."""

from __future__ import annotations

from collections.abc import Callable

LabelResolver = Callable[[int], str]
"""Synchronous ``subject_id -> label`` lookup supplied by the caller."""


__all__ = ["LabelResolver"]
