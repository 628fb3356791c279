from __future__ import annotations

from pydantic import BaseModel, Field

from ats_optimizer.core.config.scoring import ScoringConfig, get_scoring_config
from ats_optimizer.schemas.analysis import ProfileFacts, ProfileFields, ResumeFacts, Suggestion

from .aggregate import composite_score
from .profile import extract_profile_facts
from .resume import extract_resume_facts
from .suggestions import generate_suggestions


class ResumeScan(BaseModel):
    facts: ResumeFacts
    composite_score: int = Field(ge=0, le=100)
    suggestions: list[Suggestion] = Field(default_factory=list)


class ProfileScan(BaseModel):
    facts: ProfileFacts
    composite_score: int = Field(ge=0, le=100)
    suggestions: list[Suggestion] = Field(default_factory=list)


def build_resume_scan(facts: ResumeFacts, config: ScoringConfig | None = None) -> ResumeScan:
    config = config or get_scoring_config()
    missing = facts.keywords.missing[: config.optimize.resume.missing_keyword_count]
    return ResumeScan(
        facts=facts,
        composite_score=composite_score(facts.sub_scores(), config.resume.weights),
        suggestions=generate_suggestions(
            facts,
            config.suggestions.resume,
            {"missing_keywords": ", ".join(missing)},
        ),
    )


def build_profile_scan(facts: ProfileFacts, config: ScoringConfig | None = None) -> ProfileScan:
    config = config or get_scoring_config()
    return ProfileScan(
        facts=facts,
        composite_score=composite_score(facts.sub_scores(), config.profile.weights),
        suggestions=generate_suggestions(facts, config.suggestions.profile),
    )


def scan_resume_text(text: str, config: ScoringConfig | None = None) -> ResumeScan:
    config = config or get_scoring_config()
    return build_resume_scan(extract_resume_facts(text, config.resume), config)


def scan_profile(profile: ProfileFields, config: ScoringConfig | None = None) -> ProfileScan:
    config = config or get_scoring_config()
    return build_profile_scan(extract_profile_facts(profile, config.profile), config)
