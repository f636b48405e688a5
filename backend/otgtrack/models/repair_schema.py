"""
OTG repair ticket schema.

A repair ticket has its own lifecycle (Open → Closed) and points at a tooling
asset through ``linked_code``. The link is informational: the code should
match an existing Cliché/Forme code but nothing enforces it.

Storage keys follow the front-end format, including the French ``conducteur``
and ``etat`` keys.
"""
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from otgtrack.models.inventory_schema import AssetType, generate_id


class RepairToolType(str, Enum):
    CLICHE = "A – CLICHÉ"
    FORME = "B – FORME"

    @property
    def asset_type(self) -> AssetType:
        return AssetType.CLICHE if self is RepairToolType.CLICHE else AssetType.FORME


class RepairCondition(str, Enum):
    REPARATION = "Réparation"
    ABIME_NOUVEAU = "Abîmé nouveau"
    CONCEPTION = "Conception"


class RepairKind(str, Enum):
    INTERNAL = "Réparation INT"
    EXTERNAL = "Réparation EXT"


class RepairStatus(str, Enum):
    OPEN = "Open"
    CLOSED = "Closed"


class OTGRepair(BaseModel):
    """
    Tooling repair ticket.

    ``supplier`` is only meaningful for external repairs. The model accepts a
    missing supplier on an external repair; the submission check in
    ``repair_engine.validate_repair_submission`` rejects it at the boundary.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
        extra="ignore",
    )

    id: str = Field(default_factory=generate_id)
    type: RepairToolType = RepairToolType.CLICHE
    linked_code: str = ""
    operator: str = Field("", alias="conducteur")
    machine: str = ""
    condition: RepairCondition = Field(RepairCondition.REPARATION, alias="etat")
    repair_kind: RepairKind = RepairKind.INTERNAL
    supplier: str = ""
    declaration_date: str = ""
    repair_date: str = ""
    problem_description: str = ""
    corrective_action: str = ""
    status: RepairStatus = RepairStatus.OPEN

    @field_validator(
        "linked_code", "operator", "machine", "supplier", "declaration_date",
        "repair_date", "problem_description", "corrective_action",
        mode="before",
    )
    @classmethod
    def _blank_if_none(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @property
    def is_external(self) -> bool:
        return self.repair_kind is RepairKind.EXTERNAL

    @property
    def is_open(self) -> bool:
        return self.status is RepairStatus.OPEN
