"""HTTP JSON inference gateway client."""

from dataclasses import dataclass

import httpx

from meal_diary.services.inference import InferenceClient


@dataclass
class HttpxInferenceClient(InferenceClient):
    """HTTPX-backed client for a self-hosted inference gateway."""

    base_url: str
    http_client: httpx.AsyncClient
    api_key: str | None = None
    timeout_seconds: float | None = None

    @classmethod
    def create(
        cls,
        base_url: str,
        api_key: str | None = None,
        timeout_seconds: float | None = None,
    ) -> "HttpxInferenceClient":
        """Create a gateway client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            api_key=api_key,
            timeout_seconds=timeout_seconds,
        )

    async def detect_foods(self, *, image_data_url: str) -> dict[str, object]:
        """Post an image to the detection endpoint."""
        return await self._post("/detect", {"image": image_data_url})

    async def analyze_foods(
        self, *, foods: list[dict[str, str]], goal: str
    ) -> dict[str, object]:
        """Post confirmed foods to the analysis endpoint."""
        return await self._post("/analyze", {"foods": foods, "goal": goal})

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _post(self, path: str, payload: dict[str, object]) -> dict[str, object]:
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        response = await self.http_client.post(
            f"{self.base_url}{path}",
            json=payload,
            headers=headers,
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        if not response.content:
            raise RuntimeError(f"Inference gateway returned an empty body for {path}")
        return response.json()
