"""
Natural-language explanations of composite results.
"""
from quantscore.explain.base import Explainer
from quantscore.explain.template import TemplateExplainer, build_summary, describe_flags
from quantscore.explain.chat import ChatCompletionExplainer

__all__ = [
    "Explainer",
    "TemplateExplainer",
    "ChatCompletionExplainer",
    "build_summary",
    "describe_flags",
]
