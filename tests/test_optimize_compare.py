import os
import sys
import tempfile
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Settings are read once at import; every test module sets the same defaults.
os.environ.setdefault("DATABASE_PATH", os.path.join(tempfile.mkdtemp(prefix="ats-optimizer-tests-"), "ats.db"))
os.environ.setdefault("RATE_LIMIT_ENABLED", "0")
os.environ.setdefault("BILLING_WEBHOOK_SECRET", "test-webhook-secret")
os.environ.setdefault("ADMIN_EMAILS", "admin@example.com")
os.environ.setdefault("LEMONSQUEEZY_VARIANT_ONE_TIME", "1001")
os.environ.setdefault("LEMONSQUEEZY_VARIANT_BASIC", "1002")
os.environ.setdefault("LEMONSQUEEZY_VARIANT_PRO", "1003")

from ats_optimizer.schemas.analysis import ProfileFields
from ats_optimizer.scoring import compare_profile, compare_resume, optimize_profile, optimize_resume, scan_profile, scan_resume_text

RESUME = (
    "email: a@b.com\n"
    "Skills: Python, React\n"
    "Experience: increased sales by 20%\n" + " ".join(["blah"] * 340)
)


class ResumeOptimizeTests(unittest.TestCase):
    def test_missing_keywords_are_appended(self):
        scan = scan_resume_text(RESUME)
        optimized = optimize_resume(RESUME, scan.facts)
        self.assertTrue(optimized.text.startswith(RESUME))
        self.assertIn("Additional Technical Skills: javascript, java, node.js, angular, vue", optimized.text)
        # The skills section already exists.
        self.assertNotIn("TECHNICAL SKILLS", optimized.text)

    def test_skills_section_added_when_absent(self):
        text = "worked on python things"
        scan = scan_resume_text(text)
        self.assertFalse(scan.facts.formatting.has_skills_section)
        optimized = optimize_resume(text, scan.facts)
        self.assertIn("\n\nTECHNICAL SKILLS\npython", optimized.text)

    def test_compare_after_optimize_does_not_lose_score(self):
        scan = scan_resume_text(RESUME)
        optimized = optimize_resume(RESUME, scan.facts)
        comparison = compare_resume(scan.facts, scan.composite_score, optimized)

        self.assertEqual(comparison.before_score, 44)
        self.assertGreaterEqual(comparison.after_score, comparison.before_score)
        self.assertEqual(comparison.improvement, comparison.after_score - comparison.before_score)
        self.assertIn("Improved keyword optimization", comparison.improvements)
        self.assertEqual(len(comparison.after_analysis.keywords.found), 7)


class ProfileOptimizeTests(unittest.TestCase):
    def setUp(self):
        self.profile = ProfileFields(headline="Hello mate", summary="", skills=["Python", "SQL", "Problem Solving"])

    def test_weak_sections_are_rewritten(self):
        scan = scan_profile(self.profile)
        optimized = optimize_profile(self.profile, scan.facts)
        self.assertEqual(
            optimized.headline,
            "Full-Stack Developer | Python, SQL, Problem Solving | Building Scalable Web Applications",
        )
        self.assertIn("0+ years of experience", optimized.summary)
        self.assertIn("Specialized in: Python, SQL, Problem Solving", optimized.summary)
        self.assertNotIn("Problem Solving", optimized.skills_to_add)
        self.assertEqual(len(optimized.skills_to_add), 5)

    def test_empty_profile_gets_no_invented_history(self):
        profile = ProfileFields()
        optimized = optimize_profile(profile, scan_profile(profile).facts)
        self.assertEqual(optimized.headline, "Full-Stack Developer |  | Building Scalable Web Applications")
        self.assertIn("0+ years of experience", optimized.summary)
        self.assertIn("Specialized in: \n", optimized.summary)

    def test_strong_headline_is_kept(self):
        profile = self.profile.model_copy(
            update={"headline": "Senior Software Engineer | Python expert at Acme building data platforms"}
        )
        scan = scan_profile(profile)
        self.assertGreaterEqual(scan.facts.headline.score, 70)
        optimized = optimize_profile(profile, scan.facts)
        self.assertEqual(optimized.headline, profile.headline)

    def test_compare_profile(self):
        scan = scan_profile(self.profile)
        optimized = optimize_profile(self.profile, scan.facts)
        comparison = compare_profile(self.profile, scan.facts, scan.composite_score, optimized)
        self.assertGreater(comparison.after_score, comparison.before_score)
        self.assertIn("Improved headline optimization", comparison.improvements)
        self.assertIn("Enhanced summary content", comparison.improvements)
        self.assertNotIn("Better skills presentation", comparison.improvements)


if __name__ == "__main__":
    unittest.main()
