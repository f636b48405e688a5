"""
code_engine.py — Sequential tooling codes for Clichés and Formes.

Covers:
  - Per-machine prefix/suffix templates (fixed workshop table)
  - Fallback CL- / FR- templates for machines outside the table
  - Next code in a template's sequence, from the codes already in use
  - Detection of templates that share one sequence space

A code is ``prefix + 5-digit sequence + suffix``, e.g. ``F00042M``. The next
code is one past the highest sequence found among the existing codes of the
same asset type that match the template exactly. Codes typed by hand in
another shape are ignored, never rejected.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from otgtrack.models.inventory_schema import AssetType, InventoryItem

logger = logging.getLogger("otgtrack-codes")


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

SEQUENCE_WIDTH: int = 5


@dataclass(frozen=True)
class CodeTemplate:
    prefix: str
    suffix: str = ""

    def format(self, sequence: int) -> str:
        return f"{self.prefix}{str(sequence).zfill(SEQUENCE_WIDTH)}{self.suffix}"

    def pattern(self) -> "re.Pattern[str]":
        # ASCII digits only: the sequence is always written with 0-9
        return re.compile(
            rf"{re.escape(self.prefix)}(\d{{{SEQUENCE_WIDTH}}}){re.escape(self.suffix)}",
            re.ASCII,
        )


FALLBACK_TEMPLATES: Dict[AssetType, CodeTemplate] = {
    AssetType.CLICHE: CodeTemplate("CL-"),
    AssetType.FORME: CodeTemplate("FR-"),
}

MACHINE_CODE_STRUCTURES: Dict[str, Dict[AssetType, CodeTemplate]] = {
    "MACARBOX": {
        AssetType.CLICHE: CodeTemplate("F", "M"),
        AssetType.FORME: CodeTemplate("F", "MR"),
    },
    "ASAHI CELMACH": {
        AssetType.CLICHE: CodeTemplate("F", "AC"),
        AssetType.FORME: CodeTemplate("F", "P"),
    },
    "DRO": {
        AssetType.CLICHE: CodeTemplate("F", "D"),
        AssetType.FORME: CodeTemplate("F", "R"),
    },
    "CHROMA HQP": {
        AssetType.CLICHE: CodeTemplate("F", "CH"),
        AssetType.FORME: CodeTemplate("F", "CC"),
    },
}

TemplateTable = Mapping[str, Mapping[AssetType, CodeTemplate]]


def resolve_template(
    machine: str,
    asset_type: AssetType,
    templates: Optional[TemplateTable] = None,
) -> CodeTemplate:
    """Template for ``machine``; unknown machines and empty prefixes fall back."""
    asset_type = AssetType(asset_type)
    table = MACHINE_CODE_STRUCTURES if templates is None else templates
    template = table.get(machine, {}).get(asset_type)
    fallback = FALLBACK_TEMPLATES[asset_type]
    if template is None or not template.prefix:
        # Mirrors the storage format: an empty prefix and a missing suffix
        # both mean "use the default"
        return CodeTemplate(fallback.prefix, template.suffix if template else "")
    return template


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

def max_sequence(template: CodeTemplate, codes: Iterable[str]) -> int:
    """Highest sequence number among ``codes`` matching ``template``, or 0."""
    pattern = template.pattern()
    highest = 0
    for code in codes:
        if not code:
            continue
        match = pattern.fullmatch(code.strip())
        if match:
            highest = max(highest, int(match.group(1)))
    return highest


def next_code(
    machine: str,
    asset_type: AssetType,
    items: Iterable[InventoryItem],
    templates: Optional[TemplateTable] = None,
) -> str:
    """
    Next free code for ``machine`` and ``asset_type``.

    >>> next_code("MACARBOX", AssetType.CLICHE, [])
    'F00001M'

    Gaps are not reused: with ``F00001M`` and ``F00005M`` in use the result
    is ``F00006M``.
    """
    template = resolve_template(machine, asset_type, templates)
    codes = (item.code_for(asset_type) for item in items)
    return template.format(max_sequence(template, codes) + 1)


def initial_codes(
    machine: str,
    items: Iterable[InventoryItem],
    templates: Optional[TemplateTable] = None,
) -> Tuple[str, str]:
    """(cliché code, forme code) pre-filled on a new dossier in auto mode."""
    items = list(items)
    return (
        next_code(machine, AssetType.CLICHE, items, templates),
        next_code(machine, AssetType.FORME, items, templates),
    )


def shared_sequence_spaces(
    templates: Optional[TemplateTable] = None,
) -> List[Tuple[AssetType, str, str, str]]:
    """
    Pairs of machines whose templates for one asset type are identical.

    Such machines draw from the same sequence, so their codes cannot be told
    apart. Returns ``(asset_type, machine_a, machine_b, example_code)`` rows.
    """
    table = MACHINE_CODE_STRUCTURES if templates is None else templates
    collisions: List[Tuple[AssetType, str, str, str]] = []
    for asset_type in AssetType:
        seen: Dict[CodeTemplate, str] = {}
        for machine in table:
            template = resolve_template(machine, asset_type, table)
            if template in seen:
                collisions.append((asset_type, seen[template], machine, template.format(1)))
            else:
                seen[template] = machine
    return collisions


def log_shared_sequence_spaces(templates: Optional[TemplateTable] = None) -> int:
    collisions = shared_sequence_spaces(templates)
    for asset_type, first, second, example in collisions:
        logger.warning(
            f"Machines {first!r} and {second!r} share the {asset_type.value} "
            f"code sequence ({example}); their codes will interleave"
        )
    return len(collisions)
