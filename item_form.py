"""Item description form state, submission check and description assembly.

Everything here is pure so both the FastAPI backend and the Streamlit wizard
can reuse it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

MATERIAL_OPTIONS = (
    "Plastic",
    "Paper/Cardboard",
    "Glass",
    "Metal (Aluminum)",
    "Metal (Other)",
    "Electronics",
    "Battery",
    "Fabric/Textile",
    "Wood",
    "Rubber",
    "Mixed Materials",
    "Other",
)

SIZE_OPTIONS = (
    "Small (fits in hand)",
    "Medium (size of a book)",
    "Large (size of a box)",
    "Extra Large (furniture size)",
)

CONDITION_OPTIONS = (
    "Clean/New",
    "Slightly dirty",
    "Very dirty/contaminated",
    "Broken but intact",
    "Broken into pieces",
    "Still functional",
)

# Fields settable through update_field. `materials` only changes via toggle_material.
TEXT_FIELDS = (
    "item_name",
    "materials_other",
    "size",
    "condition",
    "plastic_type",
    "quantity",
    "special_features",
    "user_location",
)

ITEM_NAME_REQUIRED = "Please provide the item name"
MATERIALS_REQUIRED = "Please select at least one material"

# Line order of the assembled description after the item and materials lines.
_DETAIL_LINES = (
    ("plastic_type", "Plastic type/recycling code"),
    ("size", "Size"),
    ("condition", "Condition"),
    ("quantity", "Quantity"),
    ("special_features", "Special features/concerns"),
    ("user_location", "User Location"),
)


class ItemDescription(BaseModel):
    """What the user has told us about the item so far."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    item_name: str = ""
    materials: Tuple[str, ...] = ()
    materials_other: str = ""
    size: str = ""
    condition: str = ""
    plastic_type: str = ""
    quantity: str = ""
    special_features: str = ""
    user_location: str = ""

    @field_validator("materials")
    @classmethod
    def _known_unique_materials(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        unknown = [material for material in value if material not in MATERIAL_OPTIONS]
        if unknown:
            raise ValueError(f"Unknown material(s): {', '.join(unknown)}")
        return tuple(dict.fromkeys(value))

    @field_validator("size")
    @classmethod
    def _known_size(cls, value: str) -> str:
        if value and value not in SIZE_OPTIONS:
            raise ValueError(f"Unknown size: {value}")
        return value

    @field_validator("condition")
    @classmethod
    def _known_condition(cls, value: str) -> str:
        if value and value not in CONDITION_OPTIONS:
            raise ValueError(f"Unknown condition: {value}")
        return value


@dataclass(frozen=True)
class SubmitCheck:
    ok: bool
    message: Optional[str] = None


def update_field(item: ItemDescription, field: str, value: str) -> ItemDescription:
    """Return a copy of `item` with one text field replaced.

    The copy goes through model validation, so an off-catalog size or
    condition raises pydantic's ValidationError.
    """
    if field not in TEXT_FIELDS:
        raise KeyError(f"Unknown item field: {field}")
    if not isinstance(value, str):
        raise TypeError(f"{field} must be text, got {type(value).__name__}")
    return ItemDescription.model_validate({**item.model_dump(), field: value})


def toggle_material(item: ItemDescription, material: str) -> ItemDescription:
    """Add `material` if absent, remove it if present. Unknown materials are ignored."""
    if material not in MATERIAL_OPTIONS:
        return item
    if material in item.materials:
        materials = tuple(m for m in item.materials if m != material)
    else:
        materials = item.materials + (material,)
    return item.model_copy(update={"materials": materials})


def can_submit(item: ItemDescription) -> SubmitCheck:
    if not item.item_name.strip():
        return SubmitCheck(ok=False, message=ITEM_NAME_REQUIRED)
    if not item.materials:
        return SubmitCheck(ok=False, message=MATERIALS_REQUIRED)
    return SubmitCheck(ok=True)


def build_description(item: ItemDescription) -> str:
    """Assemble the multi-line item description sent to the guidance provider.

    Fields that are blank after trimming contribute no line. The "Other" note
    is appended to the materials line in parentheses.
    """
    lines = []

    item_name = item.item_name.strip()
    if item_name:
        lines.append(f"Item: {item_name}")

    if item.materials:
        materials_line = f"Materials: {', '.join(item.materials)}"
        materials_other = item.materials_other.strip()
        if materials_other:
            materials_line += f" ({materials_other})"
        lines.append(materials_line)

    for field, label in _DETAIL_LINES:
        value = getattr(item, field).strip()
        if value:
            lines.append(f"{label}: {value}")

    return "\n".join(lines)
