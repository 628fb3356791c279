from __future__ import annotations

from typing import Any, Mapping, Sequence

from pydantic import BaseModel

from ats_optimizer.core.config.scoring import RuleCondition, SuggestionRule
from ats_optimizer.schemas.analysis import Suggestion

_PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}


class _FormatContext(dict):
    def __missing__(self, key: str) -> str:
        return ""


def _resolve(facts: BaseModel, path: str) -> Any:
    current: Any = facts
    for part in path.split("."):
        current = getattr(current, part, None)
        if current is None:
            return None
    return current


def _fires(condition: RuleCondition, facts: BaseModel) -> bool:
    value = _resolve(facts, condition.field)
    if condition.op == "is_false":
        return not value
    if condition.op == "lt":
        return (value or 0) < condition.value
    if condition.op == "len_lt":
        return len(value or ()) < condition.value
    raise ValueError(f"Unknown rule operator '{condition.op}'.")


def generate_suggestions(
    facts: BaseModel,
    rules: Sequence[SuggestionRule],
    context: Mapping[str, str] | None = None,
) -> list[Suggestion]:
    """Evaluate rules in order and return the fired suggestions, high priority first.

    Ties keep the rule order, so the output is a pure function of the facts.
    """
    format_context = _FormatContext(context or {})
    fired: list[Suggestion] = []
    for rule in rules:
        if not _fires(rule.when, facts):
            continue
        fired.append(
            Suggestion(
                category=rule.category,
                priority=rule.priority,
                title=rule.title,
                description=rule.description.format_map(format_context),
                impact=rule.impact,
                example=rule.example,
            )
        )
    return sorted(fired, key=lambda item: _PRIORITY_RANK[item.priority])
