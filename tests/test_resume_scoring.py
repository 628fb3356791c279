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

from ats_optimizer.core.config.scoring import get_scoring_config
from ats_optimizer.scoring import extract_resume_facts, scan_resume_text


def _sample_resume(filler_words: int = 340) -> str:
    # "blah" avoids every catalog term, so only the named skills are found.
    return (
        "email: a@b.com\n"
        "Skills: Python, React\n"
        "Experience: increased sales by 20%\n" + " ".join(["blah"] * filler_words)
    )


class ResumeScoringTests(unittest.TestCase):
    def setUp(self):
        self.rules = get_scoring_config().resume

    def test_empty_text_scores_zero_everywhere(self):
        facts = extract_resume_facts("", self.rules)
        self.assertEqual(facts.sub_scores(), {"keywords": 0, "formatting": 0, "content": 0, "technical": 0})
        self.assertEqual(facts.keywords.found, [])
        self.assertEqual(facts.keywords.missing, list(self.rules.keywords.catalog[:10]))
        self.assertEqual(facts.content.word_count, 0)
        self.assertEqual(scan_resume_text("").composite_score, 0)

    def test_sample_resume_facts(self):
        facts = extract_resume_facts(_sample_resume(), self.rules)

        self.assertEqual(facts.keywords.found, ["python", "react"])
        self.assertEqual(facts.keywords.score, 10)
        self.assertNotIn("python", facts.keywords.missing)

        self.assertTrue(facts.formatting.has_contact_info)
        self.assertTrue(facts.formatting.has_skills_section)
        self.assertTrue(facts.formatting.has_experience_section)
        self.assertTrue(facts.formatting.has_proper_sections)
        self.assertGreaterEqual(facts.formatting.score, 75)

        self.assertTrue(facts.content.has_quantifiable_achievements)
        self.assertFalse(facts.content.has_relevant_experience)
        self.assertFalse(facts.content.has_education_section)
        self.assertEqual(facts.content.word_count, 350)
        self.assertEqual(facts.content.score, 50)

        self.assertEqual(facts.technical.programming_languages, ["python"])
        self.assertEqual(facts.technical.frameworks, ["react"])
        self.assertEqual(facts.technical.score, 20)

    def test_sample_resume_composite_and_suggestions(self):
        scan = scan_resume_text(_sample_resume())
        # 0.35*10 + 0.25*100 + 0.25*50 + 0.15*20
        self.assertEqual(scan.composite_score, 44)

        categories = [item.category for item in scan.suggestions]
        self.assertEqual(categories, ["keywords", "technical"])
        self.assertEqual(
            scan.suggestions[0].description,
            "Include these important keywords: javascript, java, node.js, angular, vue",
        )

    def test_word_count_outside_range_loses_points(self):
        short = extract_resume_facts(_sample_resume(filler_words=10), self.rules)
        self.assertEqual(short.content.word_count, 20)
        self.assertEqual(short.content.score, 30)

    def test_catalog_terms_match_as_substrings(self):
        facts = extract_resume_facts("Senior JavaScript person", self.rules)
        self.assertIn("javascript", facts.keywords.found)
        self.assertIn("java", facts.keywords.found)


if __name__ == "__main__":
    unittest.main()
