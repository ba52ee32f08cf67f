import unittest
from collections import Counter
from datetime import datetime, timedelta

from jobfeed.core.normalize import CandidateJob, FreshnessTier, make_fingerprint
from jobfeed.filters.location import MatchLevel, match_by_location
from jobfeed.filters.prefilter import SubscriberProfile, shortlist
from jobfeed.filters.rules import (
    experience_matches,
    filter_by_career_path,
    filter_by_language,
    filter_by_quality,
)
from jobfeed.filters.scoring import enforce_diversity, raw_score, score_job

NOW = datetime(2025, 9, 18, 12, 0)


def make_job(
    title="Analyst",
    *,
    city="london",
    country="united kingdom",
    location=None,
    source="serpapi",
    company="Acme",
    description="Analyst role in a growing team",
    posted_at=NOW - timedelta(days=10),
    freshness=FreshnessTier.COMPREHENSIVE,
    experience=None,
    languages=(),
    career_path="unknown",
):
    location = location if location is not None else f"{city.title()}, {country.title()}"
    return CandidateJob(
        title=title,
        company=company,
        url=f"https://example.com/{source}/{title}",
        source=source,
        location=location,
        city=city,
        country=country,
        description=description,
        posted_at=posted_at,
        freshness_tier=freshness,
        experience_level=experience,
        languages=list(languages),
        career_path=career_path,
        fingerprint=make_fingerprint(title, company, location),
    )


class LocationTierTests(unittest.TestCase):
    def test_exact_when_ten_or_more(self):
        jobs = [make_job(f"L{i}") for i in range(10)] + [make_job("P", city="paris", country="france")]
        pool, level = match_by_location(jobs, ["London"])
        self.assertEqual(level, MatchLevel.EXACT)
        self.assertEqual(len(pool), 10)

    def test_three_exact_forty_nearby_falls_to_nearby(self):
        exact = [make_job(f"L{i}") for i in range(3)]
        nearby = [make_job(f"M{i}", city="manchester") for i in range(40)]
        others = [make_job(f"P{i}", city="paris", country="france") for i in range(5)]
        pool, level = match_by_location(exact + nearby + others, ["London"])
        self.assertEqual(level, MatchLevel.NEARBY)
        self.assertEqual(len(pool), 43)
        self.assertTrue(all(j.country == "united kingdom" for j in pool))

    def test_broad_takes_first_n_of_pool(self):
        jobs = [make_job(f"P{i}", city="paris", country="france") for i in range(60)]
        pool, level = match_by_location(jobs, ["Berlin"], broad_pool=50)
        self.assertEqual(level, MatchLevel.BROAD)
        self.assertEqual([j.title for j in pool], [f"P{i}" for i in range(50)])

    def test_no_target_cities_is_broad_over_whole_pool(self):
        jobs = [make_job(f"P{i}") for i in range(60)]
        pool, level = match_by_location(jobs, [])
        self.assertEqual(level, MatchLevel.BROAD)
        self.assertEqual(len(pool), 60)

    def test_native_city_names_and_areas_match_exactly(self):
        jobs = [make_job(f"W{i}", city="wien", country="austria") for i in range(10)]
        _, level = match_by_location(jobs, ["Vienna"])
        self.assertEqual(level, MatchLevel.EXACT)
        area = make_job("Area", city="east london", location="East London, UK")
        pool, _ = match_by_location([area] * 10, ["London"])
        self.assertEqual(len(pool), 10)

    def test_fuzzy_first_word_counts_as_nearby(self):
        jobs = [make_job(f"F{i}", city="frankfurt", country="", location="Frankfurt, Hesse") for i in range(5)]
        pool, level = match_by_location(jobs, ["Frankfurt am Main"])
        self.assertEqual(level, MatchLevel.NEARBY)
        self.assertEqual(len(pool), 5)


class FilterRuleTests(unittest.TestCase):
    def test_language_filter(self):
        jobs = [
            make_job("en", languages=["English"]),
            make_job("none"),
            make_job("de", languages=["German", "English"]),
        ]
        kept = filter_by_language(jobs, ["german"])
        self.assertEqual([j.title for j in kept], ["none", "de"])
        self.assertEqual(len(filter_by_language(jobs, [])), 3)

    def test_quality_rejects_incomplete(self):
        jobs = [make_job("ok"), make_job("nodesc", description=""), make_job("nocomp", company="")]
        self.assertEqual([j.title for j in filter_by_quality(jobs, now=NOW)], ["ok"])

    def test_free_tier_age_limit(self):
        old = make_job("old", posted_at=NOW - timedelta(days=40))
        undated = make_job("undated", posted_at=None)
        self.assertEqual(
            [j.title for j in filter_by_quality([old, undated], subscription_tier="free", now=NOW)],
            ["undated"],
        )
        self.assertEqual(len(filter_by_quality([old, undated], subscription_tier="premium", now=NOW)), 2)

    def test_experience_mismatch_rejected_only_when_both_present(self):
        jobs = [make_job("senior", experience="senior"), make_job("grad", experience="graduate"), make_job("none")]
        kept = filter_by_quality(jobs, experience_preference="entry-level", now=NOW)
        self.assertEqual([j.title for j in kept], ["grad", "none"])

    def test_experience_matches_table(self):
        self.assertTrue(experience_matches("entry-level", "junior"))
        self.assertTrue(experience_matches("senior", "principal"))
        self.assertFalse(experience_matches("senior", "junior"))
        self.assertTrue(experience_matches("intern", "Intern"))
        self.assertFalse(experience_matches(None, "junior"))

    def test_career_path_filter(self):
        jobs = [make_job("d", career_path="data-analytics"), make_job("m", career_path="marketing")]
        self.assertEqual([j.title for j in filter_by_career_path(jobs, ["Data Analytics"])], ["d"])
        self.assertEqual(len(filter_by_career_path(jobs, ["Not sure yet"])), 2)
        self.assertEqual(len(filter_by_career_path(jobs, [])), 2)


class ScoringTests(unittest.TestCase):
    def test_base_score(self):
        self.assertEqual(score_job(make_job(), MatchLevel.BROAD), 50)

    def test_components(self):
        job = make_job(freshness=FreshnessTier.FRESH, company="Spotify AB", experience="junior")
        self.assertEqual(
            score_job(job, MatchLevel.NEARBY, experience_preference="entry-level"),
            50 + 10 + 10 + 10 + 15,
        )

    def test_keywords_counted_once_each(self):
        job = make_job(description="Excel, SQL and more SQL")
        self.assertEqual(score_job(job, MatchLevel.BROAD, keywords=["sql", "SQL", "excel", "python"]), 60)

    def test_clamped_to_100(self):
        job = make_job(
            company="Google",
            freshness=FreshnessTier.ULTRA_FRESH,
            experience="senior",
            description="python sql excel tableau",
        )
        kwargs = dict(experience_preference="senior", keywords=["python", "sql", "excel", "tableau"])
        self.assertGreater(raw_score(job, MatchLevel.EXACT, **kwargs), 100)
        self.assertEqual(score_job(job, MatchLevel.EXACT, **kwargs), 100)

    def test_diversity_cap(self):
        items = [("A", i) for i in range(10)] + [("B", i) for i in range(2)] + [("C", i) for i in range(5)]
        admitted = enforce_diversity(items, source_of=lambda it: it[0], per_source=3, total=100)
        counts = Counter(src for src, _ in admitted)
        self.assertEqual(counts, Counter({"A": 3, "B": 2, "C": 3}))

    def test_total_cap(self):
        items = [(f"S{i}", i) for i in range(20)]
        self.assertEqual(len(enforce_diversity(items, source_of=lambda it: it[0], total=7)), 7)


class ShortlistTests(unittest.TestCase):
    def test_top_source_capped_and_backfilled(self):
        strong = [
            make_job(f"A{i}", source="A", company="Google", freshness=FreshnessTier.ULTRA_FRESH)
            for i in range(10)
        ]
        weak = [make_job(f"{s}{i}", source=s) for s in ("B", "C", "D") for i in range(2)]
        profile = SubscriberProfile(target_cities=["London"], subscription_tier="premium")
        result = shortlist(strong + weak, profile, now=NOW)
        self.assertEqual(result.match_level, MatchLevel.EXACT)
        dist = result.source_distribution()
        self.assertEqual(dist["A"], 3)
        self.assertEqual(sum(dist.values()), 9)
        scores = [s.prefilter_score for s in result.jobs]
        self.assertEqual(scores, sorted(scores, reverse=True))
        self.assertTrue(all(50 <= s <= 100 for s in scores))

    def test_match_level_reported_on_each_item(self):
        jobs = [make_job(f"L{i}", source=f"s{i}") for i in range(3)]
        jobs += [make_job(f"M{i}", city="manchester", source=f"m{i}") for i in range(40)]
        result = shortlist(jobs, SubscriberProfile(target_cities=["London"]), now=NOW)
        self.assertEqual(result.match_level, MatchLevel.NEARBY)
        self.assertTrue(all(s.match_level == MatchLevel.NEARBY for s in result.jobs))
        self.assertEqual(len(result.jobs), 43)

    def test_profile_accepts_comma_strings(self):
        profile = SubscriberProfile(career_keywords="sql, excel", target_cities="London,Paris")
        self.assertEqual(profile.career_keywords, ["sql", "excel"])
        self.assertEqual(profile.target_cities, ["London", "Paris"])


if __name__ == "__main__":
    unittest.main()
