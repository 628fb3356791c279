from .aggregate import composite_score
from .optimize import (
    ProfileComparison,
    ResumeComparison,
    compare_profile,
    compare_resume,
    optimize_profile,
    optimize_resume,
)
from .pipeline import (
    ProfileScan,
    ResumeScan,
    build_profile_scan,
    build_resume_scan,
    scan_profile,
    scan_resume_text,
)
from .profile import extract_profile_facts
from .resume import extract_resume_facts
from .suggestions import generate_suggestions

__all__ = [
    "composite_score",
    "generate_suggestions",
    "extract_resume_facts",
    "extract_profile_facts",
    "ResumeScan",
    "ProfileScan",
    "build_resume_scan",
    "build_profile_scan",
    "scan_resume_text",
    "scan_profile",
    "optimize_resume",
    "optimize_profile",
    "compare_resume",
    "compare_profile",
    "ResumeComparison",
    "ProfileComparison",
]
