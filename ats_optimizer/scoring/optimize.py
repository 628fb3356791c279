from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from ats_optimizer.core.config.scoring import ScoringConfig, get_scoring_config
from ats_optimizer.schemas.analysis import (
    OptimizedProfile,
    OptimizedResume,
    ProfileFacts,
    ProfileFields,
    ResumeFacts,
)

from .pipeline import scan_profile, scan_resume_text


class ResumeComparison(BaseModel):
    before_score: int
    after_score: int
    improvement: int
    improvements: list[str] = Field(default_factory=list)
    before_analysis: ResumeFacts
    after_analysis: ResumeFacts


class ProfileComparison(BaseModel):
    before_score: int
    after_score: int
    improvement: int
    improvements: list[str] = Field(default_factory=list)
    before_analysis: ProfileFacts
    after_analysis: ProfileFacts


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _improvement_labels(before: dict[str, int], after: dict[str, int], labels: dict[str, str]) -> list[str]:
    return [label for category, label in labels.items() if after.get(category, 0) > before.get(category, 0)]


def optimize_resume(source_text: str, facts: ResumeFacts, config: ScoringConfig | None = None) -> OptimizedResume:
    rules = (config or get_scoring_config()).optimize.resume
    optimized = source_text or ""

    missing = facts.keywords.missing[: rules.missing_keyword_count]
    if missing:
        optimized += f"\n\n{rules.keywords_heading}{', '.join(missing)}"

    if not facts.formatting.has_skills_section:
        optimized += f"\n\n{rules.skills_heading}\n" + ", ".join(facts.technical.programming_languages)

    return OptimizedResume(text=optimized, generated_at=_utc_now())


def optimize_profile(
    profile: ProfileFields,
    facts: ProfileFacts,
    config: ScoringConfig | None = None,
) -> OptimizedProfile:
    rules = (config or get_scoring_config()).optimize.profile

    headline = profile.headline or ""
    if facts.headline.score < rules.rewrite_below:
        skills = ", ".join(profile.skills[: rules.headline_skill_count])
        headline = rules.headline_template.format(skills=skills)

    summary = profile.summary or ""
    if facts.summary.score < rules.rewrite_below:
        skills = ", ".join(profile.skills[: rules.summary_skill_count])
        years = len(profile.experience)
        summary = rules.summary_template.format(years=years, skills=skills)

    current = set(profile.skills)
    skills_to_add = [skill for skill in rules.skills_to_add if skill not in current][: rules.skills_to_add_limit]

    return OptimizedProfile(
        headline=headline,
        summary=summary,
        skills_to_add=skills_to_add,
        generated_at=_utc_now(),
    )


def compare_resume(
    before_facts: ResumeFacts,
    before_score: int,
    optimized: OptimizedResume,
    config: ScoringConfig | None = None,
) -> ResumeComparison:
    config = config or get_scoring_config()
    after = scan_resume_text(optimized.text, config)
    return ResumeComparison(
        before_score=before_score,
        after_score=after.composite_score,
        improvement=after.composite_score - before_score,
        improvements=_improvement_labels(
            before_facts.sub_scores(),
            after.facts.sub_scores(),
            config.optimize.resume.improvement_labels,
        ),
        before_analysis=before_facts,
        after_analysis=after.facts,
    )


def compare_profile(
    profile: ProfileFields,
    before_facts: ProfileFacts,
    before_score: int,
    optimized: OptimizedProfile,
    config: ScoringConfig | None = None,
) -> ProfileComparison:
    config = config or get_scoring_config()
    optimized_profile = profile.model_copy(update={"headline": optimized.headline, "summary": optimized.summary})
    after = scan_profile(optimized_profile, config)
    return ProfileComparison(
        before_score=before_score,
        after_score=after.composite_score,
        improvement=after.composite_score - before_score,
        improvements=_improvement_labels(
            before_facts.sub_scores(),
            after.facts.sub_scores(),
            config.optimize.profile.improvement_labels,
        ),
        before_analysis=before_facts,
        after_analysis=after.facts,
    )
