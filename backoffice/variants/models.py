# backoffice/variants/models.py
# ---------------------------------------------------------
# Types for the variant matrix builder: option groups, the
# normalized persisted variant record, editable rows and the
# session-scoped editor state.
# ---------------------------------------------------------
from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional, Set, Union

from pydantic import BaseModel, Field

# A commerce field as the editor holds it: number from the server, text typed by a user, or blank.
FieldValue = Union[int, float, str, None]


def new_id() -> str:
    return uuid.uuid4().hex[:12]


class VariantEditorError(Exception):
    """Base error for variant editor operations."""


class UnknownGroupError(VariantEditorError, KeyError):
    pass


class UnknownRowError(VariantEditorError, KeyError):
    pass


class VariantPayloadError(VariantEditorError, ValueError):
    """A row field could not be turned into the type the catalog API expects."""


class OptionGroup(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str = ""
    values: List[str] = Field(default_factory=list)
    enabled: bool = True


class OptionSchema(BaseModel):
    """One entry of the server-side `variantOptions` list."""
    name: str
    values: List[str] = Field(default_factory=list)


class PersistedVariant(BaseModel):
    """The one internal shape every accepted server variant record is mapped into."""
    id: str
    options: Dict[str, str] = Field(default_factory=dict)
    sku: str = ""
    price: FieldValue = None
    compare_at_price: FieldValue = None
    inventory: FieldValue = None
    manage_stock: bool = True
    images: List[str] = Field(default_factory=list)


class VariantListing(BaseModel):
    variants: List[PersistedVariant] = Field(default_factory=list)
    variant_options: List[OptionSchema] = Field(default_factory=list)


class VariantRow(BaseModel):
    id: str = Field(default_factory=new_id)
    variant_id: Optional[str] = None
    options: Dict[str, str] = Field(default_factory=dict)
    sku: str = ""
    price: FieldValue = ""
    compare_at: FieldValue = ""
    inventory: FieldValue = ""
    manage_stock: bool = True
    images: List[str] = Field(default_factory=list)
    dirty: bool = False
    saving: bool = False

    @property
    def is_existing(self) -> bool:
        return self.variant_id is not None

    @property
    def state_label(self) -> str:
        base = "existing" if self.is_existing else "new"
        return f"{base} (edited)" if self.dirty else base


class Notice(BaseModel):
    level: str = "info"  # success | info | error
    message: str


class EditorState(BaseModel):
    product_id: str
    status: str = "idle"  # idle | loading | ready | error
    error: Optional[str] = None
    groups: List[OptionGroup] = Field(default_factory=list)
    rows: List[VariantRow] = Field(default_factory=list)
    selected: Set[str] = Field(default_factory=set)
    combo_keys: List[str] = Field(default_factory=list)
    persisted: List[PersistedVariant] = Field(default_factory=list)
    persisted_index: Dict[str, PersistedVariant] = Field(default_factory=dict)
    variant_options: List[OptionSchema] = Field(default_factory=list)
    notices: List[Notice] = Field(default_factory=list)

    @property
    def ready(self) -> bool:
        return self.status == "ready"

    @property
    def mode(self) -> str:
        return "edit" if (self.persisted or self.variant_options) else "add"

    @property
    def persisted_count(self) -> int:
        return len(self.persisted)

    def find_row(self, row_id: str) -> VariantRow:
        for r in self.rows:
            if r.id == row_id:
                return r
        raise UnknownRowError(row_id)

    def find_group(self, group_id: str) -> OptionGroup:
        for g in self.groups:
            if g.id == group_id:
                return g
        raise UnknownGroupError(group_id)


def notify(state: EditorState, level: str, message: str) -> EditorState:
    return state.model_copy(update={
        "notices": [*state.notices, Notice(level=level, message=message)],
    })


def row_view(row: VariantRow) -> Dict[str, Any]:
    out = row.model_dump()
    out["is_existing"] = row.is_existing
    out["state_label"] = row.state_label
    return out
