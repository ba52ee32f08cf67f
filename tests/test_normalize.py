import unittest
from datetime import datetime, timedelta

from jobfeed.core.normalize import (
    FreshnessTier,
    build_candidate,
    extract_languages,
    freshness_tier,
    html_to_text,
    infer_experience,
    is_remote_location,
    make_fingerprint,
    parse_location,
)


class FingerprintTests(unittest.TestCase):
    def test_case_and_whitespace_insensitive(self):
        a = make_fingerprint("Graduate  Analyst", "Acme Ltd", "London, UK")
        b = make_fingerprint(" graduate analyst ", "ACME LTD", "london,  uk")
        self.assertEqual(a, b)
        self.assertEqual(len(a), 64)

    def test_different_location_differs(self):
        self.assertNotEqual(
            make_fingerprint("Analyst", "Acme", "London"),
            make_fingerprint("Analyst", "Acme", "Paris"),
        )


class LocationParsingTests(unittest.TestCase):
    def test_city_and_country_alias(self):
        self.assertEqual(parse_location("London, England, UK"), ("london", "united kingdom"))
        self.assertEqual(parse_location("München, Deutschland"), ("münchen", "germany"))

    def test_single_part_has_no_country(self):
        self.assertEqual(parse_location("Berlin"), ("berlin", ""))
        self.assertEqual(parse_location(None), ("", ""))

    def test_remote_markers(self):
        self.assertTrue(is_remote_location("Remote - Europe"))
        self.assertFalse(is_remote_location("Dublin, Ireland"))


class FreshnessTests(unittest.TestCase):
    def setUp(self):
        self.now = datetime(2025, 9, 18, 12, 0)

    def test_tiers(self):
        self.assertEqual(freshness_tier(self.now - timedelta(hours=5), now=self.now), FreshnessTier.ULTRA_FRESH)
        self.assertEqual(freshness_tier(self.now - timedelta(hours=30), now=self.now), FreshnessTier.FRESH)
        self.assertEqual(freshness_tier(self.now - timedelta(days=4), now=self.now), FreshnessTier.COMPREHENSIVE)

    def test_unknown_date_is_comprehensive(self):
        self.assertEqual(freshness_tier(None, now=self.now), FreshnessTier.COMPREHENSIVE)

    def test_custom_windows(self):
        posted = self.now - timedelta(hours=30)
        self.assertEqual(
            freshness_tier(posted, now=self.now, ultra_fresh_hours=48),
            FreshnessTier.ULTRA_FRESH,
        )


class SignalTests(unittest.TestCase):
    def test_experience_from_title(self):
        self.assertEqual(infer_experience("Senior Data Analyst"), "senior")
        self.assertEqual(infer_experience("Junior Buyer"), "junior")
        self.assertEqual(infer_experience("Marketing Intern"), "intern")

    def test_experience_from_description(self):
        self.assertEqual(infer_experience("Analyst", "You bring 5+ years of experience"), "senior")
        self.assertEqual(infer_experience("Analyst", "Perfect for a recent graduate"), "entry")
        self.assertIsNone(infer_experience("Analyst", "Join our team"))

    def test_languages(self):
        self.assertEqual(extract_languages("Fluent German and English"), ["English", "German"])
        self.assertEqual(extract_languages("Français courant"), ["French"])
        self.assertEqual(extract_languages(None, ""), [])

    def test_html_description(self):
        self.assertEqual(html_to_text("<p>Hello <b>world</b></p>"), "Hello world")
        self.assertEqual(html_to_text("plain   text"), "plain text")


class BuildCandidateTests(unittest.TestCase):
    def test_builds_all_derived_fields(self):
        now = datetime(2025, 9, 18, 12, 0)
        job = build_candidate(
            title=" Graduate Analyst ",
            company="Acme",
            url=" https://example.com/1 ",
            source="adzuna",
            location="Paris, France",
            description="<p>French and English required</p>",
            posted_at=now - timedelta(hours=2),
            now=now,
        )
        self.assertEqual(job.title, "Graduate Analyst")
        self.assertEqual(job.url, "https://example.com/1")
        self.assertEqual((job.city, job.country), ("paris", "france"))
        self.assertEqual(job.freshness_tier, FreshnessTier.ULTRA_FRESH)
        self.assertEqual(job.languages, ["English", "French"])
        self.assertEqual(job.description, "French and English required")
        self.assertEqual(job.fingerprint, make_fingerprint("Graduate Analyst", "Acme", "Paris, France"))
        self.assertEqual(job.career_path, "unknown")


if __name__ == "__main__":
    unittest.main()
