from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field


class LLMUpstreamError(RuntimeError):
    pass


@dataclass
class ModelEvaluation:
    model: str
    scores: dict[str, int]
    description: str
    final_score: float


@dataclass
class EvaluationResult:
    # only models that produced a valid result are listed
    models: dict[str, ModelEvaluation] = field(default_factory=dict)

    @property
    def average(self) -> float | None:
        if not self.models:
            return None
        finals = [m.final_score for m in self.models.values()]
        return round(sum(finals) / len(finals), 2)

    def as_model_scores(self) -> dict[str, dict]:
        return {
            name: {"scores": m.scores, "finalScore": m.final_score, "description": m.description}
            for name, m in self.models.items()
        }


class ModelJudge(ABC):
    name: str = "base"

    @abstractmethod
    async def evaluate(
        self, prompt: str, rubric: Sequence[dict], problem_statement: str
    ) -> ModelEvaluation | None:
        """Score a prompt against the rubric, None when the model gave no usable answer."""
