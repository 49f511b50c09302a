"""OpenAI Responses API client for food component extraction."""

import json
from dataclasses import dataclass

from openai import AsyncOpenAI

from meal_analyzer.services.vision import VisionClient

SCHEMA_NAME = "food_components"


@dataclass
class OpenAIVisionClient(VisionClient):
    """Vision client backed by OpenAI Responses API structured outputs."""

    client: AsyncOpenAI
    image_detail: str = "auto"
    max_output_tokens: int | None = None

    @classmethod
    def create(
        cls, api_key: str, timeout_seconds: float = 30.0
    ) -> "OpenAIVisionClient":
        return cls(client=AsyncOpenAI(api_key=api_key, timeout=timeout_seconds))

    async def extract(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Send one image with the extraction prompt and decode the JSON reply.

        Invalid JSON in the model output surfaces as ``ValueError``; an empty
        or truncated response raises ``RuntimeError``.
        """
        request = build_request(
            model=model,
            prompt=prompt,
            image_url=image_url,
            schema=schema,
            store=store,
            image_detail=self.image_detail,
        )
        if reasoning_effort:
            request["reasoning"] = {"effort": reasoning_effort}
        if self.max_output_tokens is not None:
            request["max_output_tokens"] = self.max_output_tokens

        response = await self.client.responses.create(**request)
        if getattr(response, "status", None) == "incomplete":
            details = getattr(response, "incomplete_details", None)
            reason = getattr(details, "reason", None) or "unknown reason"
            raise RuntimeError(f"OpenAI response incomplete: {reason}")
        if not response.output_text:
            raise RuntimeError("OpenAI returned an empty response")
        return json.loads(response.output_text)

    async def close(self) -> None:
        await self.client.close()


def build_request(  # noqa: PLR0913
    *,
    model: str,
    prompt: str,
    image_url: str,
    schema: dict[str, object],
    store: bool,
    image_detail: str = "auto",
) -> dict[str, object]:
    """Build a Responses API payload with a strict JSON schema output."""
    return {
        "model": model,
        "input": [
            {
                "role": "user",
                "content": [
                    {"type": "input_text", "text": prompt},
                    {
                        "type": "input_image",
                        "image_url": image_url,
                        "detail": image_detail,
                    },
                ],
            }
        ],
        "text": {
            "format": {
                "type": "json_schema",
                "name": SCHEMA_NAME,
                "strict": True,
                "schema": schema,
            }
        },
        "store": store,
    }
