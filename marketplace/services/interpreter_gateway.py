"""Interpreter gateway: turns a free-text query into filters using an LLM"""

import asyncio
import json
import logging
import time
from functools import lru_cache
from typing import Any

from openai import AsyncOpenAI
from pydantic import ValidationError

from marketplace.core.config import Settings, settings
from marketplace.schemas.search import Interpretation, SearchFilters
from marketplace.services.fallback_parser import CATEGORIES

logger = logging.getLogger(__name__)

DEFAULT_AI_INTERPRETATION = "Search processed by AI"

PROMPT_TEMPLATE = """Você é um assistente que converte buscas em linguagem natural em filtros estruturados para um marketplace de ONGs.

Analise a seguinte busca: "{query}"

Responda APENAS com um JSON válido no formato:
{{
  "filters": {{
    "category": "categoria encontrada ou null",
    "priceMin": número mínimo ou null,
    "priceMax": número máximo ou null,
    "keywords": ["palavra1", "palavra2"] ou [],
    "organization": "nome da ONG ou null"
  }},
  "interpretation": "descrição do que foi interpretado"
}}

Categorias disponíveis: {categories}

Exemplos:
- "doces até 50 reais" -> {{"filters": {{"category": "Doces", "priceMax": 50}}, "interpretation": "Category: Doces; Max price: R$ 50"}}
- "artesanato da ONG Esperança" -> {{"filters": {{"category": "Artesanato", "organization": "ONG Esperança"}}, "interpretation": "Category: Artesanato; Organization: ONG Esperança"}}
"""


class InterpretationError(Exception):
    """Raised internally when the model reply cannot be used"""


def build_prompt(query: str) -> str:
    return PROMPT_TEMPLATE.format(query=query, categories=", ".join(CATEGORIES))


def parse_reply(reply: str | None) -> Interpretation:
    """
    Validate a raw model reply into an Interpretation.

    Raises InterpretationError for an empty reply, invalid JSON or a payload
    that does not fit SearchFilters. Categories outside the known list are
    dropped, keywords are lower-cased.
    """
    text = (reply or "").strip()
    if not text:
        raise InterpretationError("Empty AI response")

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise InterpretationError(f"Malformed AI response: {e}") from e

    if not isinstance(payload, dict):
        raise InterpretationError("AI response is not a JSON object")

    raw_filters = payload.get("filters") or {}
    if not isinstance(raw_filters, dict):
        raise InterpretationError("AI response 'filters' is not an object")

    try:
        filters = SearchFilters.model_validate(_clean_filters(raw_filters))
    except ValidationError as e:
        raise InterpretationError(f"AI filters failed validation: {e.error_count()} error(s)") from e

    interpretation = payload.get("interpretation")
    if not isinstance(interpretation, str) or not interpretation.strip():
        interpretation = DEFAULT_AI_INTERPRETATION

    return Interpretation(filters=filters, interpretation=interpretation.strip())


def _clean_filters(raw: dict[str, Any]) -> dict[str, Any]:
    cleaned = {key: (None if value in ("null", "") else value) for key, value in raw.items()}

    category = cleaned.get("category")
    if category is not None:
        known = {name.lower(): name for name in CATEGORIES}
        cleaned["category"] = known.get(str(category).strip().lower())

    keywords = cleaned.get("keywords")
    if isinstance(keywords, list):
        cleaned["keywords"] = [str(word).lower() for word in keywords if str(word).strip()]

    return cleaned


class InterpreterGateway:
    """
    Ask the external model to interpret a search query.

    interpret() never raises: every failure (missing key, client error,
    timeout, unusable reply) comes back as None so the caller can fall back.
    """

    def __init__(
        self,
        client: AsyncOpenAI | None,
        model: str = "gpt-3.5-turbo",
        timeout: float = 5.0,
        max_tokens: int = 300,
        temperature: float = 0.1,
    ):
        self.client = client
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature

    @classmethod
    def from_settings(cls, config: Settings) -> "InterpreterGateway":
        client = AsyncOpenAI(api_key=config.OPENAI_API_KEY) if config.OPENAI_API_KEY else None
        return cls(
            client=client,
            model=config.AI_SEARCH_MODEL,
            timeout=config.AI_SEARCH_TIMEOUT_SECONDS,
            max_tokens=config.AI_SEARCH_MAX_TOKENS,
            temperature=config.AI_SEARCH_TEMPERATURE,
        )

    @property
    def configured(self) -> bool:
        return self.client is not None

    async def interpret(self, query: str) -> Interpretation | None:
        start = time.perf_counter()
        try:
            if self.client is None:
                raise InterpretationError("OpenAI API key not configured")

            # The timer wins if the model is slow; wait_for cancels the pending call
            reply = await asyncio.wait_for(self._complete(query), timeout=self.timeout)
            result = parse_reply(reply)
        except asyncio.TimeoutError:
            self._log_failure(query, "AI search timeout", start)
            return None
        except Exception as e:
            self._log_failure(query, str(e) or type(e).__name__, start)
            return None

        filters = result.filters.model_dump(by_alias=True, exclude_none=True)
        logger.info(
            f"AI search successful: query={query!r} filters={filters} "
            f"interpretation={result.interpretation!r} duration={_elapsed_ms(start)}ms"
        )
        return result

    async def _complete(self, query: str) -> str | None:
        completion = await self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": build_prompt(query)}],
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            response_format={"type": "json_object"},
        )
        if not completion.choices:
            return None
        return completion.choices[0].message.content

    def _log_failure(self, query: str, error: str, start: float) -> None:
        logger.warning(
            f"AI search failed, using fallback: query={query!r} error={error!r} duration={_elapsed_ms(start)}ms"
        )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


@lru_cache
def get_interpreter_gateway() -> InterpreterGateway:
    """Get cached interpreter gateway instance"""
    return InterpreterGateway.from_settings(settings)
