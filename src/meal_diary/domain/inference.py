"""Models for inference gateway payloads."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

FoodCategory = Literal["vegetable", "protein", "fat", "carbohydrate", "sugar"]


class _GatewayModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class DetectedFood(_GatewayModel):
    """Food candidate returned by detection."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    category: FoodCategory


class DetectionResult(_GatewayModel):
    """Structured output for food detection."""

    foods: list[DetectedFood]


class NutritionFigures(_GatewayModel):
    """Per-food macronutrient grams."""

    carbs: float = Field(ge=0.0)
    protein: float = Field(ge=0.0)
    fat: float = Field(ge=0.0)


class FoodWarningsPayload(_GatewayModel):
    """Optional warnings for a food."""

    timing: str | None = None
    overconsumption: str | None = None
    general: str | None = None


class AnalyzedFood(_GatewayModel):
    """Food with nutrition details from the analysis pass."""

    name: str
    category: FoodCategory
    nutrition_benefits: str | None = Field(default=None, alias="nutritionBenefits")
    nutrition: NutritionFigures
    warnings: FoodWarningsPayload | None = None


class EatingStepPayload(_GatewayModel):
    """Eating-order step as assigned by the gateway."""

    order: int = Field(ge=1)
    food_name: str = Field(alias="foodName")
    description: str


class EatingOrderPayload(_GatewayModel):
    """Recommended eating order with rationale."""

    steps: list[EatingStepPayload]
    reason: str
    eating_guide: str | None = Field(default=None, alias="eatingGuide")

    @model_validator(mode="after")
    def _steps_numbered_from_one(self) -> "EatingOrderPayload":
        orders = sorted(step.order for step in self.steps)
        if orders != list(range(1, len(orders) + 1)):
            raise ValueError("Eating steps must be numbered 1..N without gaps")
        return self


class AnalysisPayload(_GatewayModel):
    """Structured output for nutrition and eating-order analysis."""

    foods: list[AnalyzedFood]
    eating_order: EatingOrderPayload = Field(alias="eatingOrder")
    nutrition_analysis: str | None = Field(default=None, alias="nutritionAnalysis")
