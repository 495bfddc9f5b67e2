from abc import ABC, abstractmethod

from quantscore.signals.scoring.types import CompositeResult


class Explainer(ABC):
    """
    Turns a finished result into a short natural-language explanation.

    Explanations are best-effort; callers log failures and keep the result.
    """

    @abstractmethod
    async def explain(self, record: CompositeResult) -> str:
        pass

    async def close(self) -> None:
        pass
