"""
Deterministic explanation built from the result's own components.
"""
from typing import Iterable, List

from quantscore.explain.base import Explainer
from quantscore.signals.scoring.types import CompositeResult, QualityFlag, Severity

TOP_COMPONENTS = 3
SEVERITY_ORDER = (Severity.ERROR, Severity.WARNING, Severity.INFO)


def describe_flags(flags: Iterable[str]) -> List[str]:
    """
    Human-readable quality warnings, most severe first.

    Flags outside QualityFlag are kept verbatim at Info severity.
    """
    described = []
    for raw in flags:
        value = str(getattr(raw, "value", raw))
        try:
            flag = QualityFlag(value)
        except ValueError:
            described.append((Severity.INFO, value))
            continue
        described.append((flag.severity, flag.description))
    described.sort(key=lambda item: (SEVERITY_ORDER.index(item[0]), item[1]))
    return [f"{text} ({severity.value})" for severity, text in described]


def build_summary(record: CompositeResult, top: int = TOP_COMPONENTS) -> str:
    lines: List[str] = [
        f"{record.symbol} {record.study.value} on {record.analysis_date.isoformat()}: "
        f"{record.signal.value} (score {record.overall_score:+.2f}, "
        f"confidence {record.confidence:.0%}). {record.signal.description}."
    ]

    available = [c for c in record.components if c.data_available]
    if not available:
        lines.append("No component had data, so the score carries no information.")
    else:
        ranked = sorted(available, key=lambda c: abs(c.normalized_score * c.weight), reverse=True)
        drivers = "; ".join(f"{c.name} {c.normalized_score:+.2f} ({c.explanation})" for c in ranked[:top])
        lines.append(f"Main drivers: {drivers}.")

    if record.risk is not None:
        lines.append(
            f"Risk {record.risk.risk_level.value}, stop {record.risk.stop_loss_price:.2f}, "
            f"reward/risk {record.risk.risk_reward_ratio:.1f}."
        )
    if record.warning_flags:
        lines.append(f"Warnings: {'; '.join(describe_flags(record.warning_flags))}.")
    return " ".join(lines)


class TemplateExplainer(Explainer):
    """Offline explainer; never calls out and never fails on a valid result."""

    def __init__(self, top_components: int = TOP_COMPONENTS):
        self.top_components = top_components

    async def explain(self, record: CompositeResult) -> str:
        return build_summary(record, self.top_components)
