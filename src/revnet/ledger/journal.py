"""Snapshot/restore support for components that live inside a unit of work."""

from __future__ import annotations

import copy
from typing import Any


class JournaledState:
    """Mixin: deep-copies the attributes named in `_journal_fields`.

    Only plain data (dicts, lists, dataclasses, scalars) may be listed.
    Fields holding references to other components must be snapshotted by
    the component itself.
    """

    _journal_fields: tuple[str, ...] = ()

    def snapshot(self) -> dict[str, Any]:
        return {name: copy.deepcopy(getattr(self, name)) for name in self._journal_fields}

    def restore(self, state: dict[str, Any]) -> None:
        for name, value in state.items():
            setattr(self, name, value)
