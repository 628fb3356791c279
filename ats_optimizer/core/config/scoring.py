from __future__ import annotations

import math
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from ats_optimizer.core.config import settings
from ats_optimizer.schemas.account import SCAN_ACTIONS, Action, Plan

_DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[3] / "config" / "scoring.yaml"
_SCORING_CONFIG_CACHE: "ScoringConfig | None" = None

RESUME_CATEGORIES = ("keywords", "formatting", "content", "technical")
PROFILE_CATEGORIES = ("headline", "summary", "experience", "skills", "engagement")


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


def _check_weights(weights: dict[str, float], expected: tuple[str, ...]) -> dict[str, float]:
    if set(weights) != set(expected):
        raise ValueError(f"weights must define exactly: {', '.join(expected)}")
    if not math.isclose(sum(weights.values()), 1.0, abs_tol=1e-9):
        raise ValueError("weights must sum to 1.0")
    return weights


# Resume rubric


class ResumeKeywordRules(_Frozen):
    catalog: tuple[str, ...]
    target_count: int
    missing_limit: int


class FormattingPoints(_Frozen):
    contact_info: int
    skills_section: int
    experience_section: int
    proper_sections: int


class ResumeFormattingRules(_Frozen):
    contact_pattern: str
    skills_pattern: str
    experience_pattern: str
    points: FormattingPoints


class ContentPoints(_Frozen):
    achievements: int
    relevant_experience: int
    education: int
    word_count: int


class ResumeContentRules(_Frozen):
    achievements_pattern: str
    relevant_experience_pattern: str
    education_pattern: str
    word_count_range: tuple[int, int]
    points: ContentPoints


class ResumeTechnicalRules(_Frozen):
    target_count: int
    programming_languages: tuple[str, ...]
    frameworks: tuple[str, ...]
    tools: tuple[str, ...]
    databases: tuple[str, ...]


class ResumeRules(_Frozen):
    weights: dict[str, float]
    keywords: ResumeKeywordRules
    formatting: ResumeFormattingRules
    content: ResumeContentRules
    technical: ResumeTechnicalRules

    @field_validator("weights")
    @classmethod
    def _validate_weights(cls, value: dict[str, float]) -> dict[str, float]:
        return _check_weights(value, RESUME_CATEGORIES)


# Profile rubric


class HeadlinePoints(_Frozen):
    keywords: int
    compelling: int
    length: int


class HeadlineRules(_Frozen):
    keywords_pattern: str
    compelling_pattern: str
    compelling_min_length: int
    length_range: tuple[int, int]
    points: HeadlinePoints


class SummaryPoints(_Frozen):
    call_to_action: int
    keywords: int
    achievements: int
    length: int


class SummaryRules(_Frozen):
    call_to_action_pattern: str
    keywords_pattern: str
    achievements_pattern: str
    length_range: tuple[int, int]
    points: SummaryPoints


class ExperiencePoints(_Frozen):
    quantifiable_results: int
    relevant_keywords: int
    well_structured: int
    count: int


class ExperienceRules(_Frozen):
    quantifiable_pattern: str
    relevant_title_pattern: str
    min_count: int
    points: ExperiencePoints


class SkillsPoints(_Frozen):
    relevant_skills: int
    technical_skills: int
    count: int


class SkillsRules(_Frozen):
    tech_skills: tuple[str, ...]
    technical_min_count: int
    full_min_count: int
    points: SkillsPoints


class EngagementPoints(_Frozen):
    recent_activity: int
    recommendations: int


class EngagementRules(_Frozen):
    points: EngagementPoints
    connection_tiers: tuple[tuple[int, int], ...]

    @field_validator("connection_tiers")
    @classmethod
    def _sort_tiers(cls, value: tuple[tuple[int, int], ...]) -> tuple[tuple[int, int], ...]:
        return tuple(sorted(value, key=lambda tier: tier[0], reverse=True))


class ProfileRules(_Frozen):
    weights: dict[str, float]
    headline: HeadlineRules
    summary: SummaryRules
    experience: ExperienceRules
    skills: SkillsRules
    engagement: EngagementRules

    @field_validator("weights")
    @classmethod
    def _validate_weights(cls, value: dict[str, float]) -> dict[str, float]:
        return _check_weights(value, PROFILE_CATEGORIES)


# Suggestions


class RuleCondition(_Frozen):
    field: str
    op: Literal["lt", "is_false", "len_lt"]
    value: int | None = None

    @model_validator(mode="after")
    def _value_required(self) -> "RuleCondition":
        if self.op != "is_false" and self.value is None:
            raise ValueError(f"condition '{self.op}' on '{self.field}' needs a value")
        return self


class SuggestionRule(_Frozen):
    when: RuleCondition
    category: str
    priority: Literal["high", "medium", "low"]
    title: str
    description: str
    impact: int
    example: str | None = None


class SuggestionRules(_Frozen):
    resume: tuple[SuggestionRule, ...]
    profile: tuple[SuggestionRule, ...]


# Optimization


class ResumeOptimizeRules(_Frozen):
    missing_keyword_count: int
    keywords_heading: str
    skills_heading: str
    improvement_labels: dict[str, str]


class ProfileOptimizeRules(_Frozen):
    rewrite_below: int
    headline_template: str
    headline_skill_count: int
    summary_template: str
    summary_skill_count: int
    skills_to_add_limit: int
    skills_to_add: tuple[str, ...]
    improvement_labels: dict[str, str]


class OptimizeRules(_Frozen):
    resume: ResumeOptimizeRules
    profile: ProfileOptimizeRules


# Plans


class FreePreview(_Frozen):
    suggestions: int
    keywords: int
    improvement_tips: int


class PlanRules(_Frozen):
    scan_limits: dict[Plan, int | None]
    entitlements: dict[Action, tuple[Plan, ...]]
    free_preview: FreePreview

    @model_validator(mode="after")
    def _exhaustive(self) -> "PlanRules":
        missing_plans = [plan.value for plan in Plan if plan not in self.scan_limits]
        if missing_plans:
            raise ValueError(f"scan_limits missing plans: {', '.join(missing_plans)}")
        expected_actions = {action for action in Action if action not in SCAN_ACTIONS}
        if set(self.entitlements) != expected_actions:
            missing = sorted(action.value for action in expected_actions - set(self.entitlements))
            raise ValueError(f"entitlements must cover every non-scan action; missing: {', '.join(missing)}")
        return self

    def scan_limit(self, plan: Plan) -> int | None:
        return self.scan_limits[plan]


class ScoringConfig(_Frozen):
    resume: ResumeRules
    profile: ProfileRules
    suggestions: SuggestionRules
    optimize: OptimizeRules
    plans: PlanRules


def load_scoring_config(path: str | Path) -> ScoringConfig:
    """Parse and validate a scoring config file. Raises RuntimeError on any problem."""
    config_path = Path(path)
    if not config_path.exists():
        raise RuntimeError(f"Scoring config not found at '{config_path}'.")

    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuntimeError(f"Failed to read scoring config '{config_path}': {exc}") from exc

    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise RuntimeError(f"Invalid YAML in scoring config '{config_path}': {exc}") from exc

    if not isinstance(parsed, dict):
        raise RuntimeError(f"Invalid scoring config '{config_path}': expected a top-level mapping.")

    try:
        return ScoringConfig.model_validate(parsed)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid scoring config '{config_path}': {exc}") from exc


def get_scoring_config() -> ScoringConfig:
    """Load the process-wide scoring config once and cache it."""
    global _SCORING_CONFIG_CACHE

    if _SCORING_CONFIG_CACHE is None:
        _SCORING_CONFIG_CACHE = load_scoring_config(settings.scoring_config_path or _DEFAULT_CONFIG_PATH)
    return _SCORING_CONFIG_CACHE
