import asyncio
import json
from types import SimpleNamespace

import pytest

from aisle.config import Settings
from aisle.core.models import RecipeState
from aisle.services.exceptions import GenerationError
from aisle.services.llm import RecipeGenerator, RecipePipeline, build_prompt
from aisle.services.metrics import MetricsLogger


class FakeCompletions:
    def __init__(self, responses=(), error=None):
        self.responses = list(responses)
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.responses.pop(0)


def reply(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


def make_pipeline(completions, tmp_path=None):
    settings = Settings(openrouter_api_key=None, data_dir=str(tmp_path or "data"))
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    metrics = MetricsLogger(settings) if tmp_path else None
    return RecipePipeline(RecipeGenerator(settings, client=client), metrics)


def test_prompt_lists_ingredients_in_order():
    prompt = build_prompt(["Apples", "Flour", "Butter"])
    assert prompt.endswith("Apples, Flour, Butter")
    assert "suggest fixes" in prompt


def test_request_shape():
    completions = FakeCompletions([reply("# Apple Crumble")])
    pipeline = make_pipeline(completions)

    asyncio.run(pipeline.generate_recipe(["Apples", "Flour"]))

    assert len(completions.calls) == 1
    call = completions.calls[0]
    assert call["model"] == "meta-llama/llama-3.1-8b-instruct:free"
    assert call["top_p"] == 0.5
    assert call["temperature"] == 0.5
    assert call["messages"] == [{"role": "user", "content": build_prompt(["Apples", "Flour"])}]


def test_empty_ingredient_list_is_still_sent_and_output_sanitized():
    completions = FakeCompletions([reply("Please add ingredients.\n\n<script>alert(1)</script>")])
    pipeline = make_pipeline(completions)

    html = asyncio.run(pipeline.generate_recipe([]))

    assert len(completions.calls) == 1
    assert "<script" not in html
    assert "Please add ingredients." in html
    assert pipeline.state is RecipeState.SUCCEEDED
    assert pipeline.snapshot().html == html


def test_malformed_response_fails_and_keeps_previous_recipe():
    completions = FakeCompletions([reply("# Omelette"), SimpleNamespace(error={"message": "rate limited"})])
    pipeline = make_pipeline(completions)
    first = asyncio.run(pipeline.generate_recipe(["Eggs"]))

    with pytest.raises(GenerationError):
        asyncio.run(pipeline.generate_recipe(["Eggs"]))

    run = pipeline.snapshot()
    assert run.state is RecipeState.FAILED
    assert run.html == first
    assert "Malformed" in run.error


@pytest.mark.parametrize("response", [
    SimpleNamespace(choices=[]),
    SimpleNamespace(choices=None),
    SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=None))]),
])
def test_other_malformed_shapes(response):
    pipeline = make_pipeline(FakeCompletions([response]))
    with pytest.raises(GenerationError):
        asyncio.run(pipeline.generate_recipe(["Rice"]))


def test_transport_failure_is_not_retried():
    completions = FakeCompletions(error=ConnectionError("connection reset"))
    pipeline = make_pipeline(completions)
    with pytest.raises(GenerationError):
        asyncio.run(pipeline.generate_recipe(["Rice"]))
    assert len(completions.calls) == 1
    assert pipeline.state is RecipeState.FAILED


def test_next_run_after_failure_can_succeed():
    completions = FakeCompletions([SimpleNamespace(), reply("Fried rice")])
    pipeline = make_pipeline(completions)
    with pytest.raises(GenerationError):
        asyncio.run(pipeline.generate_recipe(["Rice"]))
    html = asyncio.run(pipeline.generate_recipe(["Rice"]))
    assert "Fried rice" in html
    assert pipeline.snapshot().error is None


def test_missing_credential_is_a_generation_error():
    pipeline = RecipePipeline(RecipeGenerator(Settings(openrouter_api_key=None)))
    with pytest.raises(GenerationError):
        asyncio.run(pipeline.generate_recipe(["Rice"]))
    assert pipeline.state is RecipeState.FAILED


def test_latency_is_logged(tmp_path):
    pipeline = make_pipeline(FakeCompletions([reply("Soup")]), tmp_path)
    asyncio.run(pipeline.generate_recipe(["Water", "Salt"]))

    lines = (tmp_path / "latency_log.jsonl").read_text(encoding="utf-8").splitlines()
    entry = json.loads(lines[-1])
    assert entry["name"] == "recipe_generate"
    assert entry["ok"] is True
    assert entry["extra"]["ingredients"] == 2


def test_render_failure_ends_in_failed_state(monkeypatch):
    completions = FakeCompletions([reply("# Omelette"), reply("# Broken")])
    pipeline = make_pipeline(completions)
    first = asyncio.run(pipeline.generate_recipe(["Eggs"]))

    def broken_render(text):
        raise ValueError("renderer crashed")

    monkeypatch.setattr("aisle.services.llm.render_recipe", broken_render)
    with pytest.raises(GenerationError):
        asyncio.run(pipeline.generate_recipe(["Eggs"]))

    run = pipeline.snapshot()
    assert run.state is RecipeState.FAILED
    assert run.html == first
    assert "renderer crashed" in run.error
