from __future__ import annotations

from ats_optimizer.core.config.scoring import ProfileRules
from ats_optimizer.schemas.analysis import (
    EngagementFacts,
    ExperienceEntry,
    ExperienceFacts,
    HeadlineFacts,
    ProfileFacts,
    ProfileFields,
    SkillsFacts,
    SummaryFacts,
)

from .matching import capped_points, in_range, matches


def score_headline(headline: str, rules: ProfileRules) -> HeadlineFacts:
    section = rules.headline
    headline = headline or ""
    length = len(headline)
    has_keywords = matches(section.keywords_pattern, headline)
    is_compelling = length >= section.compelling_min_length and matches(section.compelling_pattern, headline)

    score = capped_points(
        [
            (has_keywords, section.points.keywords),
            (is_compelling, section.points.compelling),
            (in_range(length, section.length_range), section.points.length),
        ]
    )
    return HeadlineFacts(has_keywords=has_keywords, is_compelling=is_compelling, length=length, score=score)


def score_summary(summary: str, rules: ProfileRules) -> SummaryFacts:
    section = rules.summary
    summary = summary or ""
    has_call_to_action = matches(section.call_to_action_pattern, summary)
    has_keywords = matches(section.keywords_pattern, summary)
    has_achievements = matches(section.achievements_pattern, summary)
    length = len(summary)

    score = capped_points(
        [
            (has_call_to_action, section.points.call_to_action),
            (has_keywords, section.points.keywords),
            (has_achievements, section.points.achievements),
            (in_range(length, section.length_range), section.points.length),
        ]
    )
    return SummaryFacts(
        has_call_to_action=has_call_to_action,
        has_keywords=has_keywords,
        has_achievements=has_achievements,
        length=length,
        score=score,
    )


def score_experience(entries: list[ExperienceEntry], rules: ProfileRules) -> ExperienceFacts:
    section = rules.experience
    has_results = any(matches(section.quantifiable_pattern, entry.description) for entry in entries)
    has_relevant = any(matches(section.relevant_title_pattern, entry.title) for entry in entries)
    well_structured = bool(entries) and all(entry.title and entry.company and entry.duration for entry in entries)
    count = len(entries)

    score = capped_points(
        [
            (has_results, section.points.quantifiable_results),
            (has_relevant, section.points.relevant_keywords),
            (well_structured, section.points.well_structured),
            (count >= section.min_count, section.points.count),
        ]
    )
    return ExperienceFacts(
        has_quantifiable_results=has_results,
        has_relevant_keywords=has_relevant,
        is_well_structured=well_structured,
        count=count,
        score=score,
    )


def score_skills(skills: list[str], rules: ProfileRules) -> SkillsFacts:
    section = rules.skills
    lowered = [skill.lower() for skill in skills if skill]
    has_relevant = any(tech in skill for skill in lowered for tech in section.tech_skills)
    count = len(skills)

    score = capped_points(
        [
            (has_relevant, section.points.relevant_skills),
            (count >= section.technical_min_count, section.points.technical_skills),
            (count >= section.full_min_count, section.points.count),
        ]
    )
    return SkillsFacts(
        has_relevant_skills=has_relevant,
        has_technical_skills=count >= section.technical_min_count,
        count=count,
        score=score,
    )


def score_engagement(profile: ProfileFields, rules: ProfileRules) -> EngagementFacts:
    section = rules.engagement
    connections = profile.connections or 0
    tier_points = next((points for minimum, points in section.connection_tiers if connections >= minimum), 0)

    score = capped_points(
        [
            (profile.has_recent_activity, section.points.recent_activity),
            (profile.has_recommendations, section.points.recommendations),
            (tier_points > 0, tier_points),
        ]
    )
    return EngagementFacts(
        has_recent_activity=profile.has_recent_activity,
        has_recommendations=profile.has_recommendations,
        connection_count=connections,
        score=score,
    )


def extract_profile_facts(profile: ProfileFields, rules: ProfileRules) -> ProfileFacts:
    return ProfileFacts(
        headline=score_headline(profile.headline, rules),
        summary=score_summary(profile.summary, rules),
        experience=score_experience(profile.experience, rules),
        skills=score_skills(profile.skills, rules),
        engagement=score_engagement(profile, rules),
    )
