"""
FILE: Schemas/methodologist.py
-------------------------------
Pydantic schemas for the guided wizard and the Recommender.
WizardSelection is built one step at a time and never edited in place:
with_choice() returns a new selection, reset() an empty one.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from enum import Enum

from Schemas.test_catalog import TestDefinition


# ─────────────────────────────────────────────
# WIZARD CHOICES
# ─────────────────────────────────────────────

class Design(str, Enum):
    COMPARISON  = "comparison"
    ASSOCIATION = "association"
    PREDICTION  = "prediction"


class Characteristics(str, Enum):
    CONTINUOUS_NORMAL    = "continuous-normal"
    CONTINUOUS_NONNORMAL = "continuous-nonnormal"
    CATEGORICAL          = "categorical"
    ORDINAL              = "ordinal"


class SampleRelationship(str, Enum):
    INDEPENDENT = "independent"
    PAIRED      = "paired"


class GroupCount(str, Enum):
    TWO      = "2"
    THREE_UP = "3+"
    VARIABLE = "variable"      # not group-based (correlation, regression)


class WizardStep(str, Enum):
    DESIGN          = "design"
    CHARACTERISTICS = "characteristics"
    SAMPLES         = "samples"
    GROUPS          = "groups"


WIZARD_STEP_CHOICES: dict[WizardStep, type[Enum]] = {
    WizardStep.DESIGN:          Design,
    WizardStep.CHARACTERISTICS: Characteristics,
    WizardStep.SAMPLES:         SampleRelationship,
    WizardStep.GROUPS:          GroupCount,
}


class WizardSelection(BaseModel):
    model_config = ConfigDict(frozen=True)

    design:          Design | None = None
    characteristics: Characteristics | None = None
    samples:         SampleRelationship | None = None
    groups:          GroupCount | None = None

    def with_choice(self, step: WizardStep | str, value: Any) -> "WizardSelection":
        """Returns a copy with one slot set. Raises ValueError on an unknown choice."""
        step = WizardStep(step)
        choice = WIZARD_STEP_CHOICES[step](value)
        return self.model_copy(update={step.value: choice})

    @classmethod
    def reset(cls) -> "WizardSelection":
        return cls()

    @property
    def is_complete(self) -> bool:
        return None not in (self.design, self.characteristics, self.samples, self.groups)


# ─────────────────────────────────────────────
# RECOMMENDER INPUT / OUTPUT
# ─────────────────────────────────────────────

class Suitability(str, Enum):
    EXCELLENT  = "excellent"
    VERY_GOOD  = "very good"
    GOOD       = "good"
    ACCEPTABLE = "acceptable"


class DataShape(BaseModel):
    """Observed data the Recommender penalises against."""
    groups: list[Any] = Field(default_factory=list)
    values: list[Any] = Field(default_factory=list)
    group_column: str | None = None
    value_column: str | None = None


class Recommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    test: TestDefinition
    score: int
    suitability: Suitability
