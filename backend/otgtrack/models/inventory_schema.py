"""
Inventory item (production dossier) schema.

One dossier tracks up to two tooling assets, a Cliché and a Forme, each with
its own procurement timeline. JSON keys keep the camelCase names used by the
browser front-end (``codeCliche``, ``isOrderedForme``, ...).
"""
import secrets
import string
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_LENGTH = 9


def generate_id() -> str:
    """Short random base-36 identifier, e.g. ``'k3x9q0z1m'``."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))


class ItemStatus(str, Enum):
    NOT_ORDERED = "Not Ordered"
    ORDERED = "Ordered"
    RECEIVED = "Received"
    DELAYED = "Delayed"


class AssetType(str, Enum):
    CLICHE = "cliche"
    FORME = "forme"


@dataclass(frozen=True)
class AssetRecord:
    """Read-only view over the per-asset fields of a dossier."""
    code: str
    supplier: str
    date_creation: str
    is_ordered: bool
    date_order: str
    date_expected: str
    date_delivery: str

    @property
    def is_needed(self) -> bool:
        return bool(self.code.strip())


DATE_FIELDS = (
    "date_creation",
    "date_creation_cliche",
    "date_order_cliche",
    "date_expected_cliche",
    "date_delivery_cliche",
    "date_creation_forme",
    "date_order_forme",
    "date_expected_forme",
    "date_delivery_forme",
)

TEXT_FIELDS = (
    "code_cliche",
    "code_forme",
    "machine",
    "reference",
    "client",
    "element",
    "supplier_cliche",
    "supplier_forme",
    "comments",
    "non_conformity",
)


class InventoryItem(BaseModel):
    """A production dossier needing zero, one or both tooling assets."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
        extra="ignore",
    )

    id: str = Field(default_factory=generate_id)
    code_cliche: str = ""
    code_forme: str = ""
    machine: str = ""
    reference: str = ""
    client: str = ""
    element: str = ""
    supplier_cliche: str = ""
    supplier_forme: str = ""
    poses: int = 1
    date_creation: str = ""

    date_creation_cliche: str = ""
    is_ordered_cliche: bool = False
    date_order_cliche: str = ""
    date_expected_cliche: str = ""
    date_delivery_cliche: str = ""

    date_creation_forme: str = ""
    is_ordered_forme: bool = False
    date_order_forme: str = ""
    date_expected_forme: str = ""
    date_delivery_forme: str = ""

    comments: str = ""
    non_conformity: str = ""
    custom_fields: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("poses", mode="before")
    @classmethod
    def _clamp_poses(cls, value: Any) -> int:
        try:
            poses = int(float(value))
        except (TypeError, ValueError, OverflowError):
            # Non-numeric, NaN or infinite
            poses = 0
        return max(1, poses)

    @field_validator(*DATE_FIELDS, mode="before")
    @classmethod
    def _normalize_date(cls, value: Any) -> str:
        # Empty string is the only "not set" marker; null never reaches storage
        if value is None:
            return ""
        return str(value).strip()

    @field_validator(*TEXT_FIELDS, mode="before")
    @classmethod
    def _blank_if_none(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("custom_fields", mode="before")
    @classmethod
    def _empty_if_none(cls, value: Any) -> Dict[str, Any]:
        return {} if value is None else value

    def asset(self, asset_type: AssetType) -> AssetRecord:
        suffix = AssetType(asset_type).value
        return AssetRecord(
            code=getattr(self, f"code_{suffix}"),
            supplier=getattr(self, f"supplier_{suffix}"),
            date_creation=getattr(self, f"date_creation_{suffix}"),
            is_ordered=getattr(self, f"is_ordered_{suffix}"),
            date_order=getattr(self, f"date_order_{suffix}"),
            date_expected=getattr(self, f"date_expected_{suffix}"),
            date_delivery=getattr(self, f"date_delivery_{suffix}"),
        )

    def code_for(self, asset_type: AssetType) -> str:
        return getattr(self, f"code_{AssetType(asset_type).value}")


def merged_payload(model: BaseModel, changes: Mapping[str, Any]) -> Dict[str, Any]:
    """
    ``model`` dumped by alias with ``changes`` applied on top.

    Keys of ``changes`` may be field names or aliases; both are folded onto
    the alias so a later ``model_validate`` sees each field exactly once.
    """
    fields = type(model).model_fields
    payload = model.model_dump(by_alias=True)
    for key, value in changes.items():
        field = fields.get(key)
        payload[field.alias if field is not None and field.alias else key] = value
    return payload
