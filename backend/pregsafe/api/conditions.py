"""Maternal condition API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Query
from pydantic import BaseModel

from pregsafe.schemas.assessment import ConditionAlternativesSchema
from pregsafe.services.maternal_conditions import MATERNAL_CONDITIONS, get_safe_alternatives_for_condition

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conditions", tags=["Conditions"])


class ConditionSummary(BaseModel):
    key: str
    name: str
    first_line: list[str]


@router.get(
    "",
    response_model=list[ConditionSummary],
    summary="List maternal conditions",
)
def list_conditions() -> list[ConditionSummary]:
    return [
        ConditionSummary(key=p.key, name=p.name, first_line=list(p.first_line))
        for p in MATERNAL_CONDITIONS.values()
    ]


@router.get(
    "/{name}/alternatives",
    response_model=ConditionAlternativesSchema,
    summary="Safe alternatives for a condition",
    description="Get first-line, second-line and avoid lists for a condition in a trimester.",
)
def get_condition_alternatives(
    name: str,
    trimester: Annotated[int, Query(description="Trimester (1-3)")],
) -> ConditionAlternativesSchema:
    result = get_safe_alternatives_for_condition(name, trimester)
    return ConditionAlternativesSchema.model_validate(result)
