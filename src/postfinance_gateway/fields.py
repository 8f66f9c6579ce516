"""Field schema shared by payload construction and validation.

Each FieldSpec maps a snake_case attribute (or caller option) to its wire
name, with an optional transform applied to non-empty values.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any


def to_json(value: Any) -> str:
    """Compact JSON rendering used for COMPLUS."""
    return json.dumps(value, separators=(",", ":"), sort_keys=True)


def to_json_unless_str(value: Any) -> str:
    if isinstance(value, str):
        return value
    return to_json(value)


@dataclass(frozen=True)
class FieldSpec:
    """Mapping of an attribute to a wire field."""

    name: str
    wire_name: str
    transform: Callable[[Any], Any] | None = None
    required: bool = False
    label: str = ""

    def render(self, value: Any) -> Any:
        if value is None or value == "":
            return None
        if self.transform is None:
            return value
        return self.transform(value)


# Card attributes copied onto every payload
CARD_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("order_id", "ORDERID"),
    FieldSpec("number", "CARDNO", required=True, label="Card number"),
    FieldSpec("csc", "CVC", required=True, label="CSC"),
    FieldSpec("alias", "ALIAS"),
    FieldSpec("alias_usage", "ALIASUSAGE"),
    FieldSpec("payment_method", "PM"),
    FieldSpec("email", "EMAIL"),
    FieldSpec("zip", "OWNERZIP"),
    FieldSpec("city", "OWNERCITY"),
    FieldSpec("address1", "OWNERADDRESS"),
    FieldSpec("group_id", "GLOBORDERID"),
    FieldSpec("pay_id", "PAYID"),
    FieldSpec("custom", "COMPLUS", transform=to_json),
)

# Caller options allowed to override the card payload. AMOUNT is scaled
# by the card after validation.
OPTION_FIELDS: dict[str, FieldSpec] = {
    spec.name: spec
    for spec in (
        FieldSpec("order_id", "ORDERID"),
        FieldSpec("pay_id", "PAYID"),
        FieldSpec("group_id", "GLOBORDERID"),
        FieldSpec("email", "EMAIL"),
        FieldSpec("operation", "OPERATION"),
        FieldSpec("amount", "AMOUNT"),
        FieldSpec("com", "COM", transform=to_json_unless_str),
        FieldSpec("alias", "ALIAS"),
        FieldSpec("alias_usage", "ALIASUSAGE"),
        FieldSpec("currency", "CURRENCY", transform=lambda v: str(v).upper()),
    )
}

# Card attributes compared by dirty tracking
TRACKED_FIELDS: tuple[str, ...] = (
    "number",
    "csc",
    "payment_method",
    "year",
    "month",
    "first_name",
    "last_name",
    "email",
    "address1",
    "address2",
    "city",
    "state",
    "zip",
    "custom",
)


def missing_required(
    specs: Iterable[FieldSpec],
    values: Mapping[str, Any],
) -> list[FieldSpec]:
    """Return the required specs whose value is missing or empty."""
    return [
        spec
        for spec in specs
        if spec.required and values.get(spec.name) in (None, "")
    ]


def build_fields(specs: Iterable[FieldSpec], values: Mapping[str, Any]) -> dict[str, Any]:
    """Render attribute values to wire fields, skipping empty values."""
    fields: dict[str, Any] = {}
    for spec in specs:
        rendered = spec.render(values.get(spec.name))
        if rendered is not None:
            fields[spec.wire_name] = rendered
    return fields
