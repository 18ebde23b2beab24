"""
Ontology Tables

The two closed tables that give records semantic meaning:

    PREDICATE_TABLE: (subject category, target category) -> Predicate
        Used for inferred cross-category knowledge edges. Unmapped pairs fall
        back to Predicate.RELATED_TO.

    FUSION_SLOTS: category -> (slot name, extractor)
        Only categories listed here contribute a slot to a fused record.

Adding a category means adding it to Category and deciding, here, whether it
gets predicates and/or a fusion slot.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel

from geofusion_kg.types.records import Category, Record


class Predicate(str, Enum):
    """Every predicate the knowledge graph builder can emit."""

    LOCATED_AT = "locatedAt"
    BELONGS_TO = "belongsTo"
    REGULATED_BY = "regulatedBy"
    AFFECTED_BY = "affectedBy"
    LOCATED_IN = "locatedIn"
    COVERS_AREA = "coversArea"
    ISSUES = "issues"
    FUNDS = "funds"
    SERVES = "serves"
    FUNDED_BY = "fundedBy"
    IMPACTS = "impacts"
    RELATED_TO = "relatedTo"


PREDICATE_TABLE: dict[tuple[Category, Category], Predicate] = {
    (Category.WILDLIFE, Category.REGULATIONS): Predicate.REGULATED_BY,
    (Category.WILDLIFE, Category.WEATHER): Predicate.AFFECTED_BY,
    (Category.WILDLIFE, Category.GEOSPATIAL): Predicate.LOCATED_IN,
    (Category.WEATHER, Category.GEOSPATIAL): Predicate.COVERS_AREA,
    (Category.GOVERNMENT, Category.REGULATIONS): Predicate.ISSUES,
    (Category.GOVERNMENT, Category.ECONOMIC): Predicate.FUNDS,
    (Category.ECONOMIC, Category.DEMOGRAPHICS): Predicate.SERVES,
    (Category.ECONOMIC, Category.GOVERNMENT): Predicate.FUNDED_BY,
    (Category.MARINE, Category.WEATHER): Predicate.AFFECTED_BY,
    (Category.MARINE, Category.REGULATIONS): Predicate.REGULATED_BY,
    (Category.HEALTH, Category.DEMOGRAPHICS): Predicate.SERVES,
    (Category.HEALTH, Category.GOVERNMENT): Predicate.REGULATED_BY,
    (Category.ENERGY, Category.REGULATIONS): Predicate.REGULATED_BY,
    (Category.ENERGY, Category.ECONOMIC): Predicate.IMPACTS,
}

# Predicates that only ever come from the direct (non-inferred) facts
DIRECT_PREDICATES = frozenset({Predicate.LOCATED_AT, Predicate.BELONGS_TO})


def determine_predicate(subject: Category, target: Category) -> Predicate:
    """Predicate for an inferred subject -> target fact."""
    return PREDICATE_TABLE.get((subject, target), Predicate.RELATED_TO)


# -----------------------------------------------------------------------------
# Fusion slots
# -----------------------------------------------------------------------------


def _prop(record: Record, key: str) -> Any:
    return record.properties.get(key)


def _weather(record: Record) -> dict[str, Any]:
    return {
        "source": record.source_id,
        "conditions": _prop(record, "conditions") or record.name,
        "temperature": _prop(record, "temperature"),
        "timestamp": _prop(record, "timestamp") or record.collected_at,
    }


def _demographics(record: Record) -> dict[str, Any]:
    return {
        "population": _prop(record, "population"),
        "median_income": _prop(record, "median_income"),
        "area_name": record.name,
    }


def _regulations(record: Record) -> dict[str, Any]:
    return {
        "applicable_rules": record.name,
        "agency": _prop(record, "agency"),
        "effective_date": _prop(record, "effective_date"),
    }


def _economic(record: Record) -> dict[str, Any]:
    return {
        "indicator": record.name,
        "value": _prop(record, "value"),
        "trend": _prop(record, "trend"),
    }


def _government(record: Record) -> dict[str, Any]:
    return {
        "entity": record.name,
        "type": _prop(record, "type"),
        "jurisdiction": _prop(record, "jurisdiction"),
    }


class FusionSlot(BaseModel):
    """Where a category's representative lands in a fused record."""

    name: str
    extract: Callable[[Record], dict[str, Any]]


# Insertion order is the order sources are reported in
FUSION_SLOTS: dict[Category, FusionSlot] = {
    Category.WEATHER: FusionSlot(name="weather", extract=_weather),
    Category.DEMOGRAPHICS: FusionSlot(name="demographics", extract=_demographics),
    Category.REGULATIONS: FusionSlot(name="regulations", extract=_regulations),
    Category.ECONOMIC: FusionSlot(name="economic", extract=_economic),
    Category.GOVERNMENT: FusionSlot(name="government", extract=_government),
}


def fusion_slot(category: Category) -> FusionSlot | None:
    """Slot for a category, or None when the category doesn't fuse."""
    return FUSION_SLOTS.get(category)
