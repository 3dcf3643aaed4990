import unittest
from datetime import date

from fixtures import make_application

from hirepipe.models import ApplicantFilters
from hirepipe.ui import applicant_card, applied_date_range


class ApplicantCardTests(unittest.TestCase):

    def test_names_and_titles_are_escaped(self):
        app = make_application(
            "x", candidate_name="<script>alert(1)</script>", job_title="R&D <Lead>", match_score=72,
        )
        card = applicant_card(app)
        self.assertNotIn("<script>", card)
        self.assertIn("&lt;script&gt;alert(1)&lt;/script&gt;", card)
        self.assertIn("R&amp;D &lt;Lead&gt;", card)
        self.assertIn("72%", card)

    def test_missing_score(self):
        self.assertIn("n/a", applicant_card(make_application("y")))


class AppliedDateRangeTests(unittest.TestCase):

    def test_active_bounds_prefill_inputs(self):
        filters = ApplicantFilters(date_applied_from="2026-09-01", date_applied_to="2026-09-30T12:00:00Z")
        self.assertEqual(applied_date_range(filters), (date(2026, 9, 1), date(2026, 9, 30)))

    def test_no_bounds(self):
        self.assertEqual(applied_date_range(ApplicantFilters()), (None, None))
        self.assertEqual(applied_date_range(ApplicantFilters(date_applied_to="")), (None, None))


if __name__ == "__main__":
    unittest.main()
