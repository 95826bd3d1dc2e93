"""
generation.py — Itinerary generation through the Anthropic messages API.

GenerationClient.generate(destination, duration_days):
  1. builds a fixed prompt asking for {"itinerary": [...]} and nothing else
  2. calls the model (temperature 0.7) up to 3 times with 1s / 2s backoff;
     API errors and unparseable answers both count as a failed attempt
  3. validates the parsed days strictly against schemas.Day; a single bad
     field rejects the whole itinerary (errors.ValidationError, not retried)

Returns the itinerary as a list of plain dicts ready to be stored.
"""

import asyncio
import json
import logging

from anthropic import AsyncAnthropic
from pydantic import ValidationError as PydanticValidationError

from errors import GenerationFormatError, ValidationError
from retry import DEFAULT_ATTEMPTS, DEFAULT_BASE_DELAY, DEFAULT_MULTIPLIER, retry_with_backoff
from schemas import ItineraryDocument

logger = logging.getLogger(__name__)

TEMPERATURE = 0.7
MAX_TOKENS  = 4096

PROMPT_TEMPLATE = """Generate a {duration_days}-day travel itinerary for {destination}.
Return only valid JSON matching this format:
{{
  "itinerary": [
    {{
      "day": 1,
      "theme": "string",
      "activities": [
        {{
          "time": "string",
          "description": "string",
          "location": "string"
        }}
      ]
    }}
  ]
}}
Only return the JSON. No explanation or prose."""


def build_prompt(destination: str, duration_days: int) -> str:
    return PROMPT_TEMPLATE.format(destination=destination, duration_days=duration_days)


def _strip_code_fence(text: str) -> str:
    """Remove a surrounding ```json ... ``` fence if the model added one."""
    text = text.strip()
    if text.startswith('```'):
        parts = text.split('```', 2)
        inner = parts[1] if len(parts) >= 2 else text
        if inner.startswith('json'):
            inner = inner[4:]
        text = inner.strip()
    return text


def parse_itinerary(text: str) -> list:
    """Parse the model's answer and return the raw itinerary array."""
    try:
        data = json.loads(_strip_code_fence(text))
    except json.JSONDecodeError as exc:
        raise GenerationFormatError(f'Model did not return valid JSON: {exc}') from exc

    itinerary = data.get('itinerary') if isinstance(data, dict) else None
    if not isinstance(itinerary, list):
        raise GenerationFormatError('Model response has no "itinerary" array')
    return itinerary


def validate_itinerary(raw: list) -> list[dict]:
    try:
        doc = ItineraryDocument.model_validate({'itinerary': raw})
    except PydanticValidationError as exc:
        problems = '; '.join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in exc.errors()[:3]
        )
        raise ValidationError(f'Generated itinerary failed validation — {problems}') from exc
    return [day.model_dump() for day in doc.itinerary]


class GenerationClient:

    def __init__(self, client: AsyncAnthropic, model: str,
                 temperature: float = TEMPERATURE, max_tokens: int = MAX_TOKENS,
                 attempts: int = DEFAULT_ATTEMPTS, base_delay: float = DEFAULT_BASE_DELAY,
                 multiplier: float = DEFAULT_MULTIPLIER, sleep=asyncio.sleep):
        self._client      = client
        self._model       = model
        self._temperature = temperature
        self._max_tokens  = max_tokens
        self._attempts    = attempts
        self._base_delay  = base_delay
        self._multiplier  = multiplier
        self._sleep       = sleep

    @classmethod
    def from_settings(cls, settings) -> 'GenerationClient':
        return cls(AsyncAnthropic(api_key=settings.llm_api_key), settings.llm_model)

    async def _request_itinerary(self, destination: str, duration_days: int) -> list:
        """One model call: returns the parsed (not yet validated) itinerary array."""
        message = await self._client.messages.create(
            model=self._model,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            messages=[{'role': 'user', 'content': build_prompt(destination, duration_days)}],
        )

        raw_text = ''
        for block in message.content:
            block_text = getattr(block, 'text', None)
            if block_text:
                raw_text = str(block_text)
                break

        itinerary = parse_itinerary(raw_text)
        logger.info('Generation: parsed %d day(s) for %s', len(itinerary), destination)
        return itinerary

    async def generate(self, destination: str, duration_days: int) -> list[dict]:
        raw = await retry_with_backoff(
            lambda: self._request_itinerary(destination, duration_days),
            attempts=self._attempts,
            base_delay=self._base_delay,
            multiplier=self._multiplier,
            sleep=self._sleep,
            label=f'Generation[{destination}]',
        )
        return validate_itinerary(raw)
