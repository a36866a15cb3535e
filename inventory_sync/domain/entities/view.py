"""ViewEntry: one document's cached projection inside a materialized view."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from inventory_sync.domain.enums import EntrySource


@dataclass(frozen=True)
class ViewEntry:
    """Projected fields of a document as last observed.

    ``source`` records whether the fields came from a page fetch or from the
    document's subscription. Entries are immutable; the view replaces them.
    """

    id: str
    fields: Mapping[str, Any] = field(default_factory=dict)
    source: EntrySource = EntrySource.PAGE

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)
