"""
Weighted composite scorer.

Combines normalized component scores group by group. Components without
data are dropped and the remaining member weights are renormalized, so a
missing input never counts as a neutral zero. A group with no data at all
contributes 0 and is reported as unavailable.
"""
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Sequence, Tuple

from quantscore.providers.exceptions import ConfigurationError
from quantscore.signals.scoring.normalizer import clamp
from quantscore.signals.scoring.types import ComponentScore, GroupScore, GroupSpec

logger = logging.getLogger(__name__)

WEIGHT_TOLERANCE = 1e-6

INDICATOR_COMPONENTS = (
    "rsi",
    "macd",
    "bollinger",
    "moving_averages",
    "stochastic",
    "williams_r",
    "atr",
    "volume",
)
TREND_COMPONENTS = ("trend_short", "trend_medium", "trend_long")

TIMING_GROUPS: Tuple[GroupSpec, ...] = (
    GroupSpec(
        name="indicators",
        weight=0.70,
        members=MappingProxyType({name: 1.0 / len(INDICATOR_COMPONENTS) for name in INDICATOR_COMPONENTS}),
    ),
    GroupSpec(
        name="trend",
        weight=0.30,
        members=MappingProxyType({name: 1.0 / len(TREND_COMPONENTS) for name in TREND_COMPONENTS}),
    ),
)

SENTIMENT_GROUPS: Tuple[GroupSpec, ...] = (
    GroupSpec(
        name="sentiment",
        weight=1.0,
        members=MappingProxyType({
            "earnings_revisions": 0.40,
            "relative_strength": 0.30,
            "short_interest": 0.20,
            "options_flow": 0.10,
        }),
    ),
)


@dataclass(frozen=True)
class CompositeScore:
    overall_score: float
    groups: Tuple[GroupScore, ...]

    @property
    def unavailable_groups(self) -> List[str]:
        return [g.name for g in self.groups if not g.available]


class CompositeScorer:
    """
    Combines component scores under fixed group and member weights.

    Usage:
        scorer = CompositeScorer(TIMING_GROUPS)
        composite = scorer.combine(components)
        print(composite.overall_score)
    """

    def __init__(self, groups: Sequence[GroupSpec]):
        self.groups = tuple(groups)
        self.validate()

    def validate(self) -> None:
        """Check group weights and member weights each sum to 1."""
        if not self.groups:
            raise ConfigurationError("A composite needs at least one group")

        total = sum(g.weight for g in self.groups)
        if abs(total - 1.0) > WEIGHT_TOLERANCE:
            raise ConfigurationError(f"Group weights must sum to 1.0, got {total}")

        seen = set()
        for group in self.groups:
            member_total = sum(group.members.values())
            if abs(member_total - 1.0) > WEIGHT_TOLERANCE:
                raise ConfigurationError(
                    f"Member weights of group '{group.name}' must sum to 1.0, got {member_total}"
                )
            if any(w < 0 for w in group.members.values()):
                raise ConfigurationError(f"Negative member weight in group '{group.name}'")
            overlap = seen.intersection(group.members)
            if overlap:
                raise ConfigurationError(f"Components in more than one group: {sorted(overlap)}")
            seen.update(group.members)

    @property
    def component_names(self) -> List[str]:
        return [name for g in self.groups for name in g.members]

    def group_of(self, component: str) -> GroupSpec:
        for group in self.groups:
            if component in group.members:
                return group
        raise KeyError(component)

    def combine(self, components: Iterable[ComponentScore]) -> CompositeScore:
        by_name: Dict[str, ComponentScore] = {c.name: c for c in components}
        unknown = set(by_name) - set(self.component_names)
        if unknown:
            logger.debug(f"Ignoring components outside the composite: {sorted(unknown)}")

        group_scores = [self._score_group(group, by_name) for group in self.groups]
        overall = clamp(sum(g.weight * g.score for g in group_scores))
        return CompositeScore(overall_score=overall, groups=tuple(group_scores))

    def _score_group(self, group: GroupSpec, by_name: Dict[str, ComponentScore]) -> GroupScore:
        available = {
            name: weight
            for name, weight in group.members.items()
            if name in by_name and by_name[name].data_available and weight > 0
        }
        total = sum(available.values())
        if total <= 0:
            return GroupScore(name=group.name, weight=group.weight, score=0.0, available=False)

        effective = {name: weight / total for name, weight in available.items()}
        score = sum(by_name[name].normalized_score * weight for name, weight in effective.items())
        return GroupScore(
            name=group.name,
            weight=group.weight,
            score=clamp(score),
            available=True,
            effective_weights=MappingProxyType(effective),
        )
