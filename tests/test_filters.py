import unittest
from datetime import datetime, timezone

from fixtures import make_application, make_job, note

from hirepipe.filters import (
    active_filter_count,
    available_options,
    build_predicates,
    filter_applications,
    filter_jobs,
    sort_applications,
    sort_jobs,
)
from hirepipe.models import ApplicantFilters, JobFilters


class SearchQueryTests(unittest.TestCase):

    def setUp(self):
        self.ann = make_application("1", candidate_name="Ann", skills=["Go"])
        self.ben = make_application("2", candidate_name="Ben", skills=["Rust"])

    def test_skill_match_returns_only_that_candidate(self):
        result = filter_applications([self.ann, self.ben], "Go")
        self.assertEqual([a.id for a in result], ["1"])

    def test_name_substring_is_case_insensitive(self):
        result = filter_applications([self.ann, self.ben], "an")
        self.assertEqual([a.id for a in result], ["1"])

    def test_matches_email_job_title_tags_and_notes(self):
        apps = [
            make_application("e", candidate_email="zed@acme.io"),
            make_application("j", job_title="Staff Designer"),
            make_application("t", tags=["Referral"]),
            make_application("n", notes=[note("Great portfolio review")]),
        ]
        self.assertEqual([a.id for a in filter_applications(apps, "ACME")], ["e"])
        self.assertEqual([a.id for a in filter_applications(apps, "designer")], ["j"])
        self.assertEqual([a.id for a in filter_applications(apps, "referral")], ["t"])
        self.assertEqual([a.id for a in filter_applications(apps, "portfolio")], ["n"])

    def test_blank_query_applies_no_constraint(self):
        self.assertEqual(len(filter_applications([self.ann, self.ben], "   ")), 2)

    def test_no_matches_is_empty_list(self):
        self.assertEqual(filter_applications([self.ann, self.ben], "haskell"), [])


class FilterDimensionTests(unittest.TestCase):

    def test_stage_and_min_score_combined(self):
        apps = [
            make_application("a", status="new", match_score=90),
            make_application("b", status="reviewed", match_score=60),
            make_application("c", status="reviewed", match_score=80),
        ]
        filters = ApplicantFilters(stage=["reviewed"], match_score_min=70)
        self.assertEqual([a.id for a in filter_applications(apps, "", filters)], ["c"])

    def test_unscored_records_pass_score_filters(self):
        apps = [make_application("a", match_score=None), make_application("b", match_score=40)]
        result = filter_applications(apps, filters=ApplicantFilters(match_score_min=50, match_score_max=90))
        self.assertEqual([a.id for a in result], ["a"])

    def test_inverted_score_range_matches_no_scored_record(self):
        apps = [make_application(str(s), match_score=s) for s in (10, 50, 90)]
        result = filter_applications(apps, filters=ApplicantFilters(match_score_min=80, match_score_max=20))
        self.assertEqual(result, [])

    def test_date_range_is_inclusive_and_date_only_upper_bound_covers_day(self):
        apps = [
            make_application("early", applied_at="2026-08-31T23:59:00+00:00"),
            make_application("start", applied_at="2026-09-01T00:00:00+00:00"),
            make_application("late-day", applied_at="2026-09-10T18:00:00Z"),
            make_application("after", applied_at="2026-09-11T00:00:01+00:00"),
        ]
        filters = ApplicantFilters(date_applied_from="2026-09-01", date_applied_to="2026-09-10")
        self.assertEqual([a.id for a in filter_applications(apps, filters=filters)], ["start", "late-day"])

    def test_set_fields_use_or_within_and_across(self):
        apps = [
            make_application("1", assigned_recruiter="Priya", location="Pune", skills=["SQL"], tags=["hot"]),
            make_application("2", assigned_recruiter="Arjun", location="Pune", skills=["Go"], tags=["hot"]),
            make_application("3", assigned_recruiter="Priya", location="Delhi", skills=["SQL"], tags=[]),
            make_application("4", assigned_recruiter=None, location="Pune", skills=["SQL"], tags=["hot"]),
        ]
        filters = ApplicantFilters(
            assigned_recruiter=["Priya", "Arjun"],
            location=["Pune"],
            skills=["SQL", "Python"],
            tags=["hot", "cold"],
        )
        self.assertEqual([a.id for a in filter_applications(apps, filters=filters)], ["1"])

    def test_empty_collections_mean_no_constraint(self):
        apps = [make_application("1"), make_application("2", status="hired")]
        filters = ApplicantFilters(stage=[], skills=[], tags=[])
        self.assertEqual(len(filter_applications(apps, filters=filters)), 2)

    def test_filtering_is_idempotent_and_order_preserving(self):
        apps = [make_application(str(i), match_score=i * 10, status="reviewed" if i % 2 else "new") for i in range(10)]
        filters = ApplicantFilters(stage=["reviewed"], match_score_min=20)
        once = filter_applications(apps, "candidate", filters)
        twice = filter_applications(once, "candidate", filters)
        self.assertEqual(once, twice)
        self.assertEqual([a.id for a in once], ["3", "5", "7", "9"])

    def test_input_is_not_mutated(self):
        apps = [make_application("1"), make_application("2", status="hired")]
        snapshot = list(apps)
        filter_applications(apps, filters=ApplicantFilters(stage=["hired"]))
        self.assertEqual(apps, snapshot)

    def test_bad_record_is_skipped_not_fatal(self):
        apps = [
            make_application("ok"),
            make_application("broken", applied_at="not a date"),
            make_application("ok2"),
        ]
        with self.assertLogs("hirepipe.filters", level="WARNING"):
            result = filter_applications(apps, filters=ApplicantFilters(date_applied_from="2026-01-01"))
        self.assertEqual([a.id for a in result], ["ok", "ok2"])

    def test_build_predicates_one_per_active_dimension(self):
        filters = ApplicantFilters(stage=["new"], match_score_min=1, tags=["x"])
        self.assertEqual(len(build_predicates("q", filters)), 4)
        self.assertEqual(build_predicates("", None), [])


class FacetAndSortTests(unittest.TestCase):

    def test_available_options_distinct_in_first_seen_order(self):
        apps = [
            make_application("1", assigned_recruiter="Priya", location="Pune", skills=["SQL", "Go"], tags=["a"]),
            make_application("2", assigned_recruiter="Arjun", location="Pune", skills=["Go"], tags=["b", "a"]),
            make_application("3"),
        ]
        opts = available_options(apps)
        self.assertEqual(opts["recruiters"], ["Priya", "Arjun"])
        self.assertEqual(opts["locations"], ["Pune"])
        self.assertEqual(opts["skills"], ["SQL", "Go"])
        self.assertEqual(opts["tags"], ["a", "b"])

    def test_active_filter_count_ignores_empty_fields(self):
        self.assertEqual(active_filter_count(None), 0)
        self.assertEqual(active_filter_count(ApplicantFilters(stage=[], date_applied_from="")), 0)
        self.assertEqual(active_filter_count(ApplicantFilters(stage=["new"], match_score_min=0)), 2)

    def test_sort_by_status_follows_pipeline_order(self):
        apps = [make_application("h", status="hired"), make_application("n"), make_application("o", status="offered")]
        self.assertEqual([a.id for a in sort_applications(apps, "status", "asc")], ["n", "o", "h"])

    def test_sort_by_match_treats_missing_score_as_zero(self):
        apps = [make_application("a", match_score=None), make_application("b", match_score=70), make_application("c", match_score=20)]
        self.assertEqual([a.id for a in sort_applications(apps, "match", "desc")], ["b", "c", "a"])

    def test_unknown_sort_rejected(self):
        with self.assertRaises(ValueError):
            sort_applications([], "salary")


class JobFilterTests(unittest.TestCase):

    def setUp(self):
        self.now = datetime(2026, 10, 19, tzinfo=timezone.utc)
        self.jobs = [
            make_job("1", title="Data Engineer", skills=["Spark"], created_at="2026-10-15T00:00:00+00:00", views=10, expires_at="2026-12-01"),
            make_job("2", title="Designer", status="draft", location="Pune, India", created_at="2026-08-01T00:00:00+00:00", views=50),
            make_job("3", title="Analyst", employment_type="Internship", created_at="2026-10-01T00:00:00+00:00", views=30, expires_at="2026-11-01"),
        ]

    def test_query_matches_skills_and_location(self):
        self.assertEqual([j.id for j in filter_jobs(self.jobs, "spark", now=self.now)], ["1"])
        self.assertEqual([j.id for j in filter_jobs(self.jobs, "india", now=self.now)], ["2"])

    def test_status_type_location_and_window(self):
        self.assertEqual([j.id for j in filter_jobs(self.jobs, filters=JobFilters(status=["draft"]), now=self.now)], ["2"])
        self.assertEqual([j.id for j in filter_jobs(self.jobs, filters=JobFilters(employment_type=["Internship"]), now=self.now)], ["3"])
        self.assertEqual([j.id for j in filter_jobs(self.jobs, filters=JobFilters(location="pune"), now=self.now)], ["2"])
        self.assertEqual([j.id for j in filter_jobs(self.jobs, filters=JobFilters(posted_within_days=30), now=self.now)], ["1", "3"])

    def test_sorts(self):
        self.assertEqual([j.id for j in sort_jobs(self.jobs, "newest")], ["1", "3", "2"])
        self.assertEqual([j.id for j in sort_jobs(self.jobs, "most_views")], ["2", "3", "1"])
        self.assertEqual([j.id for j in sort_jobs(self.jobs, "title_asc")], ["3", "1", "2"])
        self.assertEqual([j.id for j in sort_jobs(self.jobs, "expiry_soonest")], ["3", "1", "2"])
        self.assertEqual([j.id for j in sort_jobs(self.jobs, "expiry_latest")], ["1", "3", "2"])


if __name__ == "__main__":
    unittest.main()
