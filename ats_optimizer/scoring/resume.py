from __future__ import annotations

from ats_optimizer.core.config.scoring import ResumeRules
from ats_optimizer.schemas.analysis import (
    ContentFacts,
    FormattingFacts,
    KeywordFacts,
    ResumeFacts,
    TechnicalFacts,
)

from .matching import capped_points, contained_terms, in_range, matches, ratio_score


def score_keywords(text: str, rules: ResumeRules) -> KeywordFacts:
    catalog = rules.keywords.catalog
    found = contained_terms(catalog, text)
    found_set = set(found)
    missing = [term for term in catalog if term not in found_set][: rules.keywords.missing_limit]
    return KeywordFacts(
        found=found,
        missing=missing,
        score=ratio_score(len(found), rules.keywords.target_count),
    )


def score_formatting(text: str, rules: ResumeRules) -> FormattingFacts:
    section = rules.formatting
    has_contact_info = matches(section.contact_pattern, text)
    has_skills_section = matches(section.skills_pattern, text)
    has_experience_section = matches(section.experience_pattern, text)
    has_proper_sections = has_contact_info and has_skills_section and has_experience_section

    score = capped_points(
        [
            (has_contact_info, section.points.contact_info),
            (has_skills_section, section.points.skills_section),
            (has_experience_section, section.points.experience_section),
            (has_proper_sections, section.points.proper_sections),
        ]
    )
    return FormattingFacts(
        has_proper_sections=has_proper_sections,
        has_contact_info=has_contact_info,
        has_skills_section=has_skills_section,
        has_experience_section=has_experience_section,
        score=score,
    )


def score_content(text: str, rules: ResumeRules) -> ContentFacts:
    section = rules.content
    has_achievements = matches(section.achievements_pattern, text)
    has_relevant_experience = matches(section.relevant_experience_pattern, text)
    has_education = matches(section.education_pattern, text)
    word_count = len((text or "").split())

    score = capped_points(
        [
            (has_achievements, section.points.achievements),
            (has_relevant_experience, section.points.relevant_experience),
            (has_education, section.points.education),
            (in_range(word_count, section.word_count_range), section.points.word_count),
        ]
    )
    return ContentFacts(
        has_quantifiable_achievements=has_achievements,
        has_relevant_experience=has_relevant_experience,
        has_education_section=has_education,
        word_count=word_count,
        score=score,
    )


def score_technical(text: str, rules: ResumeRules) -> TechnicalFacts:
    section = rules.technical
    languages = contained_terms(section.programming_languages, text)
    frameworks = contained_terms(section.frameworks, text)
    tools = contained_terms(section.tools, text)
    databases = contained_terms(section.databases, text)
    total = len(languages) + len(frameworks) + len(tools) + len(databases)
    return TechnicalFacts(
        programming_languages=languages,
        frameworks=frameworks,
        tools=tools,
        databases=databases,
        score=ratio_score(total, section.target_count),
    )


def extract_resume_facts(text: str, rules: ResumeRules) -> ResumeFacts:
    text = text or ""
    return ResumeFacts(
        keywords=score_keywords(text, rules),
        formatting=score_formatting(text, rules),
        content=score_content(text, rules),
        technical=score_technical(text, rules),
    )
