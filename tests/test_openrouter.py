import asyncio
import json

import httpx
import pytest

from app.core.config import Settings
from app.integrations.llm.base import EvaluationResult, LLMUpstreamError, ModelEvaluation, ModelJudge
from app.integrations.llm.factory import run_judges
from app.integrations.llm.openrouter import OpenRouterJudge

RUBRIC = [
    {"name": "Clarity", "description": "clear", "weight": 0.6},
    {"name": "Creativity", "description": "novel", "weight": 0.4},
]


def make_judge(handler, model: str = "test/model") -> OpenRouterJudge:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    judge = OpenRouterJudge(model, client=client)
    judge.settings = Settings(llm_api_key="test-key", llm_retry_attempts=2, llm_retry_delay_ms=100)
    return judge


def reply(content: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


def test_valid_reply_is_scored():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return reply('```json\n{"Clarity": 80, "Creativity": 90, "description": "solid"}\n```')

    result = asyncio.run(make_judge(handler).evaluate("my prompt", RUBRIC, "write a haiku"))
    assert result.scores == {"Clarity": 80, "Creativity": 90}
    assert result.final_score == 84.0
    assert result.description == "solid"
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"]["model"] == "test/model"


def test_retries_after_unusable_reply():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            return reply("I cannot score this")
        return reply('{"Clarity": 50, "Creativity": 50}')

    result = asyncio.run(make_judge(handler).evaluate("p", RUBRIC, "s"))
    assert len(calls) == 2
    assert result.final_score == 50.0


def test_gives_up_after_all_attempts():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    assert asyncio.run(make_judge(handler).evaluate("p", RUBRIC, "s")) is None


def test_auth_failure_is_raised():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"message": "bad key"}})

    with pytest.raises(LLMUpstreamError):
        asyncio.run(make_judge(handler).evaluate("p", RUBRIC, "s"))


def test_average_over_valid_models_only():
    class FixedJudge:
        def __init__(self, model, final):
            self.model = model
            self.final = final

        async def evaluate(self, prompt, rubric, problem_statement):
            if self.final is None:
                return None
            return ModelEvaluation(self.model, {"Clarity": 1}, "", self.final)

    judges = [FixedJudge("a", 60.0), FixedJudge("b", None), FixedJudge("c", 90.0)]
    result = asyncio.run(run_judges(judges, "p", RUBRIC, "s"))
    assert set(result.models) == {"a", "c"}
    assert result.average == 75.0
    assert EvaluationResult().average is None


def test_model_judge_base_is_abstract():
    with pytest.raises(TypeError):
        ModelJudge()
