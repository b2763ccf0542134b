"""OpenAI Responses API client for food detection and analysis."""

import json
from dataclasses import dataclass

from openai import AsyncOpenAI

from meal_diary.domain.diary import GOAL_LABELS
from meal_diary.services.inference import (
    ANALYSIS_SCHEMA,
    DETECTION_SCHEMA,
    InferenceClient,
)

_DETECTION_PROMPT = (
    "Identify every food in the photo. "
    "Return each food with a short name and exactly one category: "
    "vegetable, protein, fat, carbohydrate or sugar."
)


@dataclass
class OpenAIInferenceClient(InferenceClient):
    """Inference client backed by OpenAI Responses API."""

    client: AsyncOpenAI
    model: str
    reasoning_effort: str | None
    store: bool

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        api_key: str,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        timeout_seconds: float | None = None,
    ) -> "OpenAIInferenceClient":
        """Create an OpenAI inference client."""
        if timeout_seconds is None:
            client = AsyncOpenAI(api_key=api_key)
        else:
            client = AsyncOpenAI(api_key=api_key, timeout=timeout_seconds)
        return cls(
            client=client,
            model=model,
            reasoning_effort=reasoning_effort,
            store=store,
        )

    async def detect_foods(self, *, image_data_url: str) -> dict[str, object]:
        """Detect foods in an image with structured outputs."""
        content = [
            {"type": "input_text", "text": _DETECTION_PROMPT},
            {"type": "input_image", "image_url": image_data_url},
        ]
        return await self._create(content, DETECTION_SCHEMA, "food_detection")

    async def analyze_foods(
        self, *, foods: list[dict[str, str]], goal: str
    ) -> dict[str, object]:
        """Analyze nutrition and eating order with structured outputs."""
        prompt = (
            "You are a nutrition expert. For the foods below, estimate per-food "
            "carbs, protein and fat in grams, describe their benefits, note any "
            "warnings, and recommend the order to eat them so that the goal "
            f"'{GOAL_LABELS.get(goal, goal)}' is best served. Number the steps "
            "from 1 without gaps and explain the reason.\n"
            f"Foods: {json.dumps(foods, ensure_ascii=False)}"
        )
        content = [{"type": "input_text", "text": prompt}]
        return await self._create(content, ANALYSIS_SCHEMA, "nutrition_analysis")

    async def _create(
        self,
        content: list[dict[str, str]],
        schema: dict[str, object],
        name: str,
    ) -> dict[str, object]:
        request_payload: dict[str, object] = {
            "model": self.model,
            "input": [{"role": "user", "content": content}],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": name,
                    "strict": True,
                    "schema": schema,
                }
            },
            "store": self.store,
        }
        if self.reasoning_effort:
            request_payload["reasoning"] = {"effort": self.reasoning_effort}

        response = await self.client.responses.create(**request_payload)
        output_text = response.output_text
        if not output_text:
            raise RuntimeError("OpenAI returned an empty response")
        return json.loads(output_text)
