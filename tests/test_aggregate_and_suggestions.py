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
from ats_optimizer.schemas.analysis import ContentFacts, FormattingFacts, KeywordFacts, ResumeFacts, TechnicalFacts
from ats_optimizer.scoring import build_resume_scan, composite_score, generate_suggestions
from ats_optimizer.scoring.matching import ratio_score, round_half_away_from_zero


class CompositeScoreTests(unittest.TestCase):
    def test_rounds_half_away_from_zero(self):
        self.assertEqual(round_half_away_from_zero(2.5), 3)
        self.assertEqual(round_half_away_from_zero(3.5), 4)
        self.assertEqual(round_half_away_from_zero(2.49), 2)

    def test_weighted_sum(self):
        weights = get_scoring_config().resume.weights
        scores = {"keywords": 50, "formatting": 100, "content": 80, "technical": 30}
        # 17.5 + 25 + 20 + 4.5 = 67
        self.assertEqual(composite_score(scores, weights), 67)

    def test_tie_rounds_up(self):
        weights = {"a": 0.5, "b": 0.5}
        self.assertEqual(composite_score({"a": 1, "b": 0}, weights), 1)

    def test_missing_category_counts_as_zero(self):
        weights = get_scoring_config().resume.weights
        self.assertEqual(composite_score({"formatting": 100}, weights), 25)
        self.assertEqual(composite_score({"formatting": 100, "content": None}, weights), 25)

    def test_ratio_score_is_capped(self):
        self.assertEqual(ratio_score(40, 20), 100)
        self.assertEqual(ratio_score(3, 20), 15)
        self.assertEqual(ratio_score(1, 0), 0)


class SuggestionTests(unittest.TestCase):
    def setUp(self):
        self.config = get_scoring_config()
        self.facts = ResumeFacts(
            keywords=KeywordFacts(found=["python"], missing=["javascript", "java", "react", "vue", "css", "html"], score=5),
            formatting=FormattingFacts(has_contact_info=True, score=25),
            content=ContentFacts(score=0),
            technical=TechnicalFacts(programming_languages=["python"], score=10),
        )

    def test_all_resume_rules_fire_in_priority_order(self):
        suggestions = generate_suggestions(self.facts, self.config.suggestions.resume, {"missing_keywords": "a, b"})
        self.assertEqual([item.category for item in suggestions], ["keywords", "formatting", "content", "technical"])
        self.assertEqual([item.priority for item in suggestions], ["high", "high", "medium", "medium"])
        self.assertEqual(suggestions[0].description, "Include these important keywords: a, b")

    def test_missing_placeholder_renders_empty(self):
        suggestions = generate_suggestions(self.facts, self.config.suggestions.resume)
        self.assertEqual(suggestions[0].description, "Include these important keywords: ")

    def test_scan_is_derived_from_facts_only(self):
        first = build_resume_scan(self.facts, self.config)
        second = build_resume_scan(self.facts.model_copy(deep=True), self.config)
        self.assertEqual(first, second)
        self.assertEqual(
            first.suggestions[0].description,
            "Include these important keywords: javascript, java, react, vue, css",
        )

    def test_passing_facts_produce_no_suggestions(self):
        facts = ResumeFacts(
            keywords=KeywordFacts(score=80),
            formatting=FormattingFacts(has_proper_sections=True, score=100),
            content=ContentFacts(has_quantifiable_achievements=True, score=100),
            technical=TechnicalFacts(programming_languages=["python", "go", "java"], score=30),
        )
        self.assertEqual(generate_suggestions(facts, self.config.suggestions.resume), [])


if __name__ == "__main__":
    unittest.main()
