from __future__ import annotations

import logging
from urllib.parse import urlparse

from ats_optimizer.schemas.analysis import EducationEntry, ExperienceEntry, ProfileFields

logger = logging.getLogger(__name__)


class ProfileFetchError(RuntimeError):
    pass


def fetch_profile(profile_url: str) -> ProfileFields:
    """Return profile fields for a public profile URL.

    No scraping is done: every URL resolves to the same sample profile, so
    callers exercise the full scoring path without contacting a third party.
    """
    parsed = urlparse(profile_url or "")
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ProfileFetchError("Failed to extract profile data")

    logger.info("profile_fetch_stub host=%s", parsed.netloc)
    return ProfileFields(
        headline="Software Developer at Tech Company",
        summary=(
            "Experienced software developer with 3+ years in web development. "
            "Skilled in JavaScript, React, and Node.js."
        ),
        experience=[
            ExperienceEntry(
                title="Software Developer",
                company="Tech Company",
                duration="2021 - Present",
                description="Developed web applications using React and Node.js",
            )
        ],
        skills=["JavaScript", "React", "Node.js", "HTML", "CSS"],
        education=[EducationEntry(school="University", degree="Bachelor's", field="Computer Science")],
        connections=250,
        profile_views=45,
        has_recent_activity=True,
        has_recommendations=True,
    )
