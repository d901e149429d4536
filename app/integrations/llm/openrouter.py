import asyncio
from collections.abc import Sequence

import httpx
import structlog

from app.core.config import get_settings
from app.integrations.llm.base import LLMUpstreamError, ModelEvaluation, ModelJudge
from app.integrations.llm.parsing import (
    build_system_prompt,
    build_user_message,
    extract_scores,
    model_final_score,
    parse_model_output,
)

logger = structlog.get_logger(__name__)

_FATAL_STATUSES = {400, 401, 403, 429}


class OpenRouterJudge(ModelJudge):
    name = "openrouter"

    def __init__(self, model: str, client: httpx.AsyncClient | None = None) -> None:
        self.settings = get_settings()
        self.model = model
        self.client = client

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.settings.llm_api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.settings.llm_http_referer,
            "X-Title": self.settings.llm_app_title,
        }

    async def _complete(self, client: httpx.AsyncClient, system_prompt: str, user_message: str) -> str:
        res = await client.post(
            f"{self.settings.llm_base_url.rstrip('/')}/chat/completions",
            headers=self._headers(),
            json={
                "model": self.model,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_message},
                ],
                "max_tokens": self.settings.llm_max_tokens,
                "temperature": self.settings.llm_temperature,
            },
        )
        res.raise_for_status()
        choices = res.json().get("choices") or []
        content = (choices[0].get("message") or {}).get("content") if choices else None
        if not isinstance(content, str) or not content.strip():
            raise ValueError(f"Model {self.model} returned empty content")
        return content

    async def evaluate(
        self, prompt: str, rubric: Sequence[dict], problem_statement: str
    ) -> ModelEvaluation | None:
        if not self.settings.llm_api_key:
            raise LLMUpstreamError("LLM API key is not configured")
        system_prompt = build_system_prompt(rubric)
        user_message = build_user_message(prompt, rubric, problem_statement)
        attempts = self.settings.llm_retry_attempts

        if self.client is not None:
            return await self._evaluate_with(self.client, system_prompt, user_message, rubric, attempts)
        async with httpx.AsyncClient(timeout=self.settings.llm_timeout_seconds) as client:
            return await self._evaluate_with(client, system_prompt, user_message, rubric, attempts)

    async def _evaluate_with(
        self,
        client: httpx.AsyncClient,
        system_prompt: str,
        user_message: str,
        rubric: Sequence[dict],
        attempts: int,
    ) -> ModelEvaluation | None:
        for attempt in range(1, attempts + 1):
            if attempt > 1:
                await asyncio.sleep(self.settings.llm_retry_delay_ms / 1000)
            try:
                content = await self._complete(client, system_prompt, user_message)
                parsed = parse_model_output(content)
            except httpx.HTTPStatusError as exc:
                code = exc.response.status_code
                if code in _FATAL_STATUSES:
                    raise LLMUpstreamError(f"{self.model} rejected the request with status {code}") from exc
                logger.warning("llm_call_failed", model=self.model, attempt=attempt, status=code)
                continue
            except httpx.TimeoutException:
                logger.warning("llm_call_timeout", model=self.model, attempt=attempt)
                continue
            except (httpx.TransportError, ValueError) as exc:
                logger.warning("llm_call_failed", model=self.model, attempt=attempt, error=str(exc))
                continue

            scores, valid = extract_scores(parsed, rubric)
            if valid:
                return ModelEvaluation(
                    model=self.model,
                    scores=scores,
                    description=str(parsed.get("description") or "No description provided"),
                    final_score=model_final_score(scores, rubric),
                )
            logger.warning(
                "llm_result_incomplete",
                model=self.model,
                attempt=attempt,
                zeroed=[name for name, value in scores.items() if value == 0],
            )
        return None
