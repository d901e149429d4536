import asyncio
from collections.abc import Sequence

from app.core.config import get_settings
from app.integrations.llm.base import EvaluationResult, ModelJudge
from app.integrations.llm.openrouter import OpenRouterJudge


def get_model_judges() -> list[ModelJudge]:
    settings = get_settings()
    return [OpenRouterJudge(model) for model in settings.llm_model_names]


async def run_judges(
    judges: Sequence[ModelJudge], prompt: str, rubric: Sequence[dict], problem_statement: str
) -> EvaluationResult:
    results = await asyncio.gather(*(j.evaluate(prompt, rubric, problem_statement) for j in judges))
    return EvaluationResult(models={r.model: r for r in results if r is not None})
