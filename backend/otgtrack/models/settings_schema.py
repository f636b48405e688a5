"""Workshop configuration: machines, suppliers, custom fields, table layout."""
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_MACHINES: List[str] = ["MACARBOX", "ASAHI CELMACH", "DRO", "CHROMA HQP"]

DEFAULT_MACHINE_COLORS: Dict[str, str] = {
    "MACARBOX": "#2563eb",
    "ASAHI CELMACH": "#059669",
    "DRO": "#d97706",
    "CHROMA HQP": "#7c3aed",
}

DEFAULT_SUPPLIERS: List[str] = ["LTE", "GRABALFA", "CHIMO", "SANCHEZ", "AMGM", "MILLER"]

# Press operators who can declare an OTG repair
DEFAULT_OPERATORS: List[str] = [
    "HILALI", "MOHAMED", "REDA", "LAHCEN", "ABDERAHIM",
    "RACHID", "SAMIR", "ADIL", "ANASS", "MERYEM",
    "YOUSSEF", "SALMA",
]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class CustomFieldDefinition(_CamelModel):
    id: str
    label: str
    type: Literal["text", "number", "date"] = "text"


class ColumnConfig(_CamelModel):
    id: str
    label: str
    visible: bool = True


def _default_columns() -> List[ColumnConfig]:
    return [
        ColumnConfig(id="element", label="Élément"),
        ColumnConfig(id="codes", label="Cliché / Forme"),
        ColumnConfig(id="client", label="Client & Réf"),
        ColumnConfig(id="machine", label="Machine"),
        ColumnConfig(id="supplier", label="Fournisseur(s)"),
        ColumnConfig(id="poses", label="Poses"),
        ColumnConfig(id="dateOrder", label="Date Commande"),
        ColumnConfig(id="dateExpected", label="Date Prévue"),
        ColumnConfig(id="dateDelivery", label="Réception Réelle"),
    ]


class AppConfig(_CamelModel):
    """
    Workshop settings. The first entry of ``machines`` is the default machine
    of a new dossier or repair ticket.
    """
    machines: List[str] = Field(default_factory=lambda: list(DEFAULT_MACHINES))
    machine_colors: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_MACHINE_COLORS))
    suppliers: List[str] = Field(default_factory=lambda: list(DEFAULT_SUPPLIERS))
    operators: List[str] = Field(default_factory=lambda: list(DEFAULT_OPERATORS))
    custom_field_definitions: List[CustomFieldDefinition] = Field(default_factory=list)
    column_order: List[ColumnConfig] = Field(default_factory=_default_columns)
    language: Literal["fr", "en"] = "fr"
    enable_email_alerts: bool = True
    notification_emails: List[str] = Field(default_factory=list)

    @property
    def default_machine(self) -> str:
        return self.machines[0] if self.machines else ""

    def custom_field_defaults(self) -> Dict[str, Any]:
        return {f.id: "" for f in self.custom_field_definitions}
