# pantrychef/services/generation_service.py
"""
Recipe generation: ingredient text in, validated RecipeCandidate out.

The generation service is a remote procedure with no side effects:

    request  = {"ingredients": "<free text>"}
    response = {"recipe": {...}}  or  {"error": "<message>"}

Two transports speak that contract:
  - EdgeFunctionTransport posts to the Supabase edge function (default).
  - OpenAITransport asks an OpenAI chat model for the same JSON object.

The whole upstream call is bounded by settings.generation_timeout_seconds.
Nothing here retries; the caller decides whether to re-invoke.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional, Protocol

import httpx
from openai import OpenAI, OpenAIError
from pydantic import ValidationError

from pantrychef.config.settings import Settings, settings
from pantrychef.db.client import run_blocking
from pantrychef.models.schemas import RecipeCandidate
from pantrychef.services.errors import (
    GenerationError,
    GenerationErrorKind,
    RecipeValidationError,
)

logger = logging.getLogger(__name__)

MALFORMED = GenerationErrorKind.MALFORMED_RESPONSE
UNAVAILABLE = GenerationErrorKind.SERVICE_UNAVAILABLE

RECIPE_SYSTEM_PROMPT = (
    "You are a recipe writer. Create one recipe that uses the ingredients the user lists. "
    "Respond with a single JSON object with keys: title (string), description (string), "
    "ingredients (array of {name, quantity, unit} strings), steps (array of strings), "
    "cookTime (minutes, number), servings (number), difficulty (easy|medium|hard), "
    "tags (array of strings), nutritionInfo ({calories: number, protein, carbs, fats: strings})."
)


def _mask_key(k: Optional[str]) -> str:
    if not k:
        return "(none)"
    if len(k) <= 8:
        return "***"
    return f"{k[:4]}...{k[-4:]}"


class RecipeTransport(Protocol):
    async def request_recipe(self, ingredients: str) -> Dict[str, Any]:
        """Return the raw response envelope for `ingredients`."""


class EdgeFunctionTransport:
    """POSTs to {SUPABASE_URL}/functions/v1/<function_name>."""

    def __init__(
        self,
        functions_url: Optional[str],
        api_key: Optional[str],
        function_name: str = "generate-recipe",
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.functions_url = functions_url.rstrip("/") if functions_url else None
        self.api_key = api_key
        self.function_name = function_name
        self._http_client = http_client

    @property
    def endpoint(self) -> Optional[str]:
        if not self.functions_url:
            return None
        return f"{self.functions_url}/{self.function_name}"

    async def _post(self, client: httpx.AsyncClient, ingredients: str) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
            headers["apikey"] = self.api_key
        return await client.post(
            self.endpoint, json={"ingredients": ingredients}, headers=headers
        )

    async def request_recipe(self, ingredients: str) -> Dict[str, Any]:
        if not self.endpoint:
            raise GenerationError(UNAVAILABLE, "Recipe generation is not configured")

        try:
            if self._http_client is not None:
                resp = await self._post(self._http_client, ingredients)
            else:
                async with httpx.AsyncClient(timeout=None) as client:
                    resp = await self._post(client, ingredients)
        except httpx.HTTPError as exc:
            logger.warning("Edge function %s unreachable: %s", self.function_name, exc)
            raise GenerationError(
                UNAVAILABLE, "Recipe service is unreachable", upstream_message=str(exc)
            ) from exc

        try:
            body = resp.json()
        except ValueError:
            body = None

        if resp.status_code >= 400:
            upstream = None
            if isinstance(body, dict):
                upstream = body.get("error") or body.get("message")
            upstream = upstream or resp.text[:300] or None
            logger.warning(
                "Edge function %s returned HTTP %s: %s",
                self.function_name,
                resp.status_code,
                upstream,
            )
            raise GenerationError(
                UNAVAILABLE,
                upstream or f"Recipe service returned HTTP {resp.status_code}",
                upstream_message=upstream,
            )

        if not isinstance(body, dict):
            raise GenerationError(MALFORMED, "Recipe service did not return a JSON object")
        return body


class OpenAITransport:
    """Chat completion in JSON mode, wrapped into the {recipe: ...} envelope."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Any = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self.model = model or settings.openai_model
        self.client = client
        if self.client is None and api_key:
            try:
                self.client = OpenAI(
                    api_key=api_key,
                    timeout=timeout_seconds or settings.generation_timeout_seconds,
                    max_retries=0,
                )
                logger.info("OpenAI client created (key=%s)", _mask_key(api_key))
            except OpenAIError as exc:
                logger.exception("Failed creating OpenAI client: %s", exc)
                self.client = None

    async def request_recipe(self, ingredients: str) -> Dict[str, Any]:
        if self.client is None:
            raise GenerationError(UNAVAILABLE, "Recipe generation is not configured")

        func = lambda: self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": RECIPE_SYSTEM_PROMPT},
                {"role": "user", "content": f"Ingredients: {ingredients}"},
            ],
            response_format={"type": "json_object"},
            temperature=0.7,
        )
        try:
            resp = await run_blocking(func)
        except OpenAIError as exc:
            logger.warning("OpenAI recipe request failed: %s", exc)
            raise GenerationError(
                UNAVAILABLE, "Recipe service is unavailable", upstream_message=str(exc)
            ) from exc

        content = None
        choices = getattr(resp, "choices", None) or []
        if choices:
            message = getattr(choices[0], "message", None)
            content = getattr(message, "content", None)
        if not content:
            raise GenerationError(MALFORMED, "Recipe service returned an empty response")

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as exc:
            raise GenerationError(
                MALFORMED, "Recipe service returned invalid JSON", upstream_message=str(exc)
            ) from exc

        # models sometimes wrap the object themselves
        if isinstance(parsed, dict) and isinstance(parsed.get("recipe"), dict):
            return parsed
        return {"recipe": parsed}


def transport_from_settings(cfg: Settings = settings) -> RecipeTransport:
    if cfg.generation_provider == "openai":
        return OpenAITransport(
            api_key=cfg.openai_api_key,
            model=cfg.openai_model,
            timeout_seconds=cfg.generation_timeout_seconds,
        )
    return EdgeFunctionTransport(
        functions_url=cfg.functions_url,
        api_key=cfg.supabase_service_role_key,
        function_name=cfg.generation_function_name,
    )


def parse_recipe_envelope(body: Any) -> RecipeCandidate:
    """
    Validate a generation response envelope. Anything short of a complete
    recipe is rejected as a whole.
    """
    if not isinstance(body, dict):
        raise GenerationError(MALFORMED, "Recipe service returned an unexpected response")

    if body.get("error"):
        upstream = str(body["error"])
        raise GenerationError(UNAVAILABLE, upstream, upstream_message=upstream)

    recipe = body.get("recipe")
    if not isinstance(recipe, dict):
        raise GenerationError(MALFORMED, "Recipe service response has no recipe")

    try:
        return RecipeCandidate.model_validate(recipe)
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        logger.warning("Generated recipe failed validation on: %s", ", ".join(fields))
        raise GenerationError(
            MALFORMED,
            "Generated recipe is incomplete or malformed",
            upstream_message=f"invalid fields: {', '.join(fields)}",
        ) from exc


class RecipeGenerator:

    def __init__(
        self,
        transport: Optional[RecipeTransport] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self.transport = transport or transport_from_settings()
        self.timeout_seconds = timeout_seconds or settings.generation_timeout_seconds

    async def generate(self, ingredient_text: str) -> RecipeCandidate:
        """
        Turn free-text ingredients into a validated candidate.

        Raises:
            RecipeValidationError: the text is empty after trimming.
            GenerationError: MALFORMED_RESPONSE for an incomplete recipe,
                SERVICE_UNAVAILABLE for transport failure, error envelope or timeout.
        """
        text = (ingredient_text or "").strip()
        if not text:
            raise RecipeValidationError("Please enter some ingredients")

        logger.info("Generating recipe from %d chars of ingredients", len(text))
        try:
            body = await asyncio.wait_for(
                self.transport.request_recipe(text), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError as exc:
            logger.warning("Recipe generation timed out after %.1fs", self.timeout_seconds)
            raise GenerationError(
                UNAVAILABLE,
                "Recipe generation timed out",
                upstream_message=f"no response within {self.timeout_seconds:.0f}s",
            ) from exc
        except GenerationError:
            raise
        except Exception as exc:
            logger.exception("Unexpected error from recipe transport: %s", exc)
            raise GenerationError(
                UNAVAILABLE, "Failed to generate recipe", upstream_message=str(exc)
            ) from exc

        candidate = parse_recipe_envelope(body)
        logger.info(
            "Generated recipe %r (%d ingredients, %d steps)",
            candidate.title,
            len(candidate.ingredients),
            len(candidate.steps),
        )
        return candidate
