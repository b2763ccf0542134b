"""Inference gateway: food detection and nutrition/order analysis."""

import base64
import logging
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from meal_diary.domain.inference import AnalysisPayload, DetectedFood, DetectionResult

_CATEGORY_ENUM = ["vegetable", "protein", "fat", "carbohydrate", "sugar"]
_NULLABLE_STRING = {"anyOf": [{"type": "string"}, {"type": "null"}]}

DETECTION_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "foods": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "category": {"type": "string", "enum": _CATEGORY_ENUM},
                },
                "required": ["name", "category"],
                "additionalProperties": False,
            },
        }
    },
    "required": ["foods"],
    "additionalProperties": False,
}

ANALYSIS_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "foods": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "category": {"type": "string", "enum": _CATEGORY_ENUM},
                    "nutritionBenefits": _NULLABLE_STRING,
                    "nutrition": {
                        "type": "object",
                        "properties": {
                            "carbs": {"type": "number", "minimum": 0},
                            "protein": {"type": "number", "minimum": 0},
                            "fat": {"type": "number", "minimum": 0},
                        },
                        "required": ["carbs", "protein", "fat"],
                        "additionalProperties": False,
                    },
                    "warnings": {
                        "anyOf": [
                            {
                                "type": "object",
                                "properties": {
                                    "timing": _NULLABLE_STRING,
                                    "overconsumption": _NULLABLE_STRING,
                                    "general": _NULLABLE_STRING,
                                },
                                "required": ["timing", "overconsumption", "general"],
                                "additionalProperties": False,
                            },
                            {"type": "null"},
                        ]
                    },
                },
                "required": [
                    "name",
                    "category",
                    "nutritionBenefits",
                    "nutrition",
                    "warnings",
                ],
                "additionalProperties": False,
            },
        },
        "eatingOrder": {
            "type": "object",
            "properties": {
                "steps": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "order": {"type": "integer", "minimum": 1},
                            "foodName": {"type": "string"},
                            "description": {"type": "string"},
                        },
                        "required": ["order", "foodName", "description"],
                        "additionalProperties": False,
                    },
                },
                "reason": {"type": "string"},
                "eatingGuide": _NULLABLE_STRING,
            },
            "required": ["steps", "reason", "eatingGuide"],
            "additionalProperties": False,
        },
        "nutritionAnalysis": _NULLABLE_STRING,
    },
    "required": ["foods", "eatingOrder", "nutritionAnalysis"],
    "additionalProperties": False,
}

_logger = logging.getLogger(__name__)


class GatewayError(RuntimeError):
    """Raised when the inference gateway fails or returns an unusable payload."""


class InferenceClient(Protocol):
    """Interface for the external inference provider."""

    async def detect_foods(self, *, image_data_url: str) -> dict[str, object]:
        """Return raw detection data for an image."""

    async def analyze_foods(
        self, *, foods: list[dict[str, str]], goal: str
    ) -> dict[str, object]:
        """Return raw nutrition and eating-order data for a food list."""


@dataclass
class InferenceGateway:
    """Calls the inference client and validates what comes back."""

    client: InferenceClient

    async def detect_foods(self, image_bytes: bytes) -> list[DetectedFood]:
        """Detect food candidates in an image."""
        if not image_bytes:
            raise GatewayError("No image was provided")
        try:
            data_url = to_data_url(image_bytes)
            raw = await self.client.detect_foods(image_data_url=data_url)
        except Exception as exc:
            _logger.warning("Food detection failed: %s", exc)
            raise GatewayError("Food detection failed") from exc
        return _validate(DetectionResult, raw, action="detection").foods

    async def analyze(self, foods: list[dict[str, str]], goal: str) -> AnalysisPayload:
        """Analyze nutrition and eating order for confirmed foods."""
        try:
            raw = await self.client.analyze_foods(foods=foods, goal=goal)
        except Exception as exc:
            _logger.warning("Nutrition analysis failed: %s", exc)
            raise GatewayError("Nutrition analysis failed") from exc
        return _validate(AnalysisPayload, raw, action="analysis")


def _validate(model, raw: object, *, action: str):  # type: ignore[no-untyped-def]
    if not isinstance(raw, dict):
        raise GatewayError(f"Gateway returned a non-object {action} payload")
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        _logger.warning("Malformed %s payload: %s", action, exc)
        raise GatewayError(f"Gateway returned a malformed {action} payload") from exc


def to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
