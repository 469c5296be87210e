from __future__ import annotations

import logging
import time
from typing import Any, Optional, Sequence

from openai import AsyncOpenAI

from aisle.config import Settings
from aisle.core.models import RecipeRun, RecipeState
from aisle.core.render import render_recipe
from aisle.services.exceptions import GenerationError
from aisle.services.metrics import MetricsLogger

logger = logging.getLogger(__name__)


def build_prompt(ingredient_names: Sequence[str]) -> str:
    """Single user message asking for a recipe from the pantry (an empty list is still sent)."""
    return (
        "You are 'AI'sle, an assistant that proposes a recipe from the ingredients in a "
        "household pantry. If the ingredients given are valid, write the recipe in markdown "
        "with an ingredient list and numbered steps; otherwise suggest fixes for the "
        "ingredients. Generate a recipe using the following ingredients: "
        + ", ".join(ingredient_names)
    )


class RecipeGenerator:
    """Thin wrapper over an OpenAI-compatible chat completion endpoint. No retries."""

    def __init__(self, settings: Settings, client: Optional[Any] = None):
        self._settings = settings
        self._client = client
        self.model = settings.recipe_model

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client
        if not self._settings.openrouter_api_key:
            raise GenerationError("OPENROUTER_API_KEY is not configured")
        headers = {}
        if self._settings.site_url:
            headers["HTTP-Referer"] = self._settings.site_url
        if self._settings.site_name:
            headers["X-Title"] = self._settings.site_name
        kwargs = {}
        if self._settings.completion_timeout_seconds is not None:
            kwargs["timeout"] = self._settings.completion_timeout_seconds
        try:
            self._client = AsyncOpenAI(
                api_key=self._settings.openrouter_api_key,
                base_url=self._settings.openrouter_base_url,
                default_headers=headers or None,
                max_retries=0,
                **kwargs,
            )
        except Exception as e:
            raise GenerationError("Could not initialize completion client") from e
        return self._client

    async def complete(self, prompt: str) -> str:
        """One completion call; returns the first choice's message text."""
        client = self._get_client()
        try:
            resp = await client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                top_p=self._settings.recipe_top_p,
                temperature=self._settings.recipe_temperature,
            )
        except Exception as e:
            raise GenerationError(f"Completion request failed: {e}") from e
        try:
            content = resp.choices[0].message.content
        except (AttributeError, IndexError, KeyError, TypeError) as e:
            raise GenerationError(f"Malformed completion response: {e!r}") from e
        if not isinstance(content, str):
            raise GenerationError("Malformed completion response: no message content")
        return content


class RecipePipeline:
    """
    idle -> requesting -> succeeded | failed, one run per trigger.

    Overlapping runs are not queued; whichever resolves last sets the state.
    A failed run keeps the html of the last successful one.
    """

    def __init__(self, generator: RecipeGenerator, metrics: Optional[MetricsLogger] = None):
        self.generator = generator
        self.metrics = metrics
        self._run = RecipeRun()

    @property
    def state(self) -> RecipeState:
        return self._run.state

    def snapshot(self) -> RecipeRun:
        return self._run.model_copy()

    async def generate_recipe(self, ingredient_names: Sequence[str]) -> str:
        names = list(ingredient_names)
        self._run = self._run.model_copy(update={"state": RecipeState.REQUESTING, "error": None})
        t0 = time.perf_counter()
        try:
            text = await self.generator.complete(build_prompt(names))
        except GenerationError as e:
            self._log_latency(t0, ok=False, count=len(names))
            self._fail(e)
            raise
        self._log_latency(t0, ok=True, count=len(names))

        try:
            html = render_recipe(text)
        except Exception as e:
            err = GenerationError(f"Could not render completion: {e}")
            self._fail(err)
            raise err from e
        self._run = RecipeRun(state=RecipeState.SUCCEEDED, html=html)
        logger.info("Generated recipe from %d ingredients", len(names))
        return html

    def _fail(self, e: GenerationError) -> None:
        logger.error("Recipe generation failed: %s", e)
        self._run = self._run.model_copy(update={"state": RecipeState.FAILED, "error": str(e)})

    def _log_latency(self, t0: float, ok: bool, count: int) -> None:
        if self.metrics is None:
            return
        self.metrics.log_latency(
            name="recipe_generate",
            duration_ms=(time.perf_counter() - t0) * 1000.0,
            ok=ok,
            extra={"ingredients": count, "model": self.generator.model},
        )
