"""OpenAI-backed location classifier with deterministic fallback."""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from creator_discovery.core.errors import ClassificationError
from creator_discovery.core.location import classify, normalize_country, region_for_country
from creator_discovery.models.creator import ParsedLocation

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

PROMPT_TEMPLATE = """You are a location parser that classifies locations into regions.
You are ONLY given the location string from a creator profile. Do NOT consider any other data.

Extract the city and country from the string and normalize the country to its standard English name.

Rules:
1. If the input is clearly not a location (a paragraph, an analysis), return "Global" as country.
2. If no city is present, set city to null.
3. If the location is clearly global or international, set country to "Global" and isGlobal to true.

Location string to analyze: "{location}"

Return ONLY a JSON object with this exact format:
{{"city": "City Name or null", "country": "Country Name", "isGlobal": true/false}}

Examples:
- "New York, US" -> {{"city": "New York", "country": "United States", "isGlobal": false}}
- "Manila, PH" -> {{"city": "Manila", "country": "Philippines", "isGlobal": false}}
- "Dubai, UAE" -> {{"city": "Dubai", "country": "UAE", "isGlobal": false}}
- "Global" -> {{"city": null, "country": "Global", "isGlobal": true}}
"""


class AILocationClassifier:
    """Ask an OpenAI model to parse a location; fall back to the rule table on any failure."""

    def __init__(
        self,
        *,
        model: str = "gpt-5-mini",
        client: Optional[Any] = None,
        openai_api_key: Optional[str] = None,
    ) -> None:
        self.model = model
        self._client = client
        self._api_key = openai_api_key

    def _get_client(self) -> Any:
        if self._client is None:
            from openai import OpenAI

            self._client = OpenAI(api_key=self._api_key) if self._api_key else OpenAI()
        return self._client

    def _call_openai(self, prompt: str) -> str:
        response = self._get_client().responses.create(
            model=self.model,
            input=[{"role": "user", "content": prompt}],
            text={"format": {"type": "text"}},
        )
        if getattr(response, "output_text", None):
            return str(response.output_text).strip()
        raise ClassificationError("Empty response from location model")

    def _parse_response(self, text: str) -> ParsedLocation:
        match = _JSON_OBJECT.search(text or "")
        if not match:
            raise ClassificationError("No JSON found in location model response")
        try:
            payload = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            raise ClassificationError(f"Malformed JSON from location model: {exc}") from exc

        country = payload.get("country") if isinstance(payload, dict) else None
        if not country or not isinstance(country, str):
            raise ClassificationError("Invalid country in location model response")

        country = normalize_country(country.strip())
        city = payload.get("city")
        if not isinstance(city, str) or not city.strip() or city.strip().lower() == "null":
            city = None
        is_global = bool(payload.get("isGlobal")) or country == "Global"
        return ParsedLocation(
            city=None if is_global else city,
            country="Global" if is_global else country,
            region="Global" if is_global else region_for_country(country),
            is_global=is_global,
        )

    def classify(self, raw: Optional[str]) -> ParsedLocation:
        if not raw or not raw.strip():
            return classify(raw)
        try:
            return self._parse_response(self._call_openai(PROMPT_TEMPLATE.format(location=raw)))
        except Exception as exc:  # pylint: disable=broad-except
            logger.debug("AI location classification failed for %r, using rules: %s", raw, exc)
            return classify(raw)
