import unittest
from datetime import date

from crimewatch.domain import CrimeIncident, CrimeReport
from crimewatch.report_views import (
    category_counts,
    format_category,
    format_distance,
    recent_incidents,
)


def _incident(category, lat=None, lon=None, street=None, outcome=None, month="2024-03"):
    location = None
    if lat is not None:
        location = {"latitude": lat, "longitude": lon, "street": {"id": 1, "name": street}}
    payload = {"category": category, "location": location, "month": month}
    if outcome:
        payload["outcome_status"] = {"category": outcome, "date": month}
    return CrimeIncident.model_validate(payload)


class TestFormatting(unittest.TestCase):
    def test_category_label(self):
        self.assertEqual(format_category("anti-social-behaviour"), "anti social behaviour")
        self.assertEqual(format_category(None), "Unknown Category")
        self.assertEqual(format_category(" - "), "Unknown Category")

    def test_distance_labels(self):
        self.assertEqual(format_distance(-1.0), "N/A")
        self.assertEqual(format_distance(0.05), "< 100 m")
        self.assertEqual(format_distance(1.26), "1.3 km away")


class TestCategoryCounts(unittest.TestCase):
    def test_most_frequent_first(self):
        report = CrimeReport(
            incidents=[
                _incident("burglary"),
                _incident("anti-social-behaviour"),
                _incident("anti-social-behaviour"),
                _incident(None),
            ]
        )
        counts = category_counts(report)
        self.assertEqual(counts[0].category, "anti social behaviour")
        self.assertEqual(counts[0].count, 2)
        self.assertEqual({c.category for c in counts[1:]}, {"burglary", "Unknown Category"})

    def test_empty_report(self):
        self.assertEqual(category_counts(CrimeReport()), [])


class TestRecentIncidents(unittest.TestCase):
    def test_rows_with_defaults_and_distance(self):
        report = CrimeReport(
            data_month=date(2024, 3, 1),
            incidents=[
                _incident("burglary", "51.5020", "-0.1246", street="On or near Parliament Square", outcome="Under investigation"),
                _incident("robbery", month=None),
            ],
        )
        rows = recent_incidents(report, 51.5007, -0.1246)

        self.assertEqual(rows[0].street, "On or near Parliament Square")
        self.assertEqual(rows[0].outcome, "Under investigation")
        self.assertEqual(rows[0].distance_label, "0.1 km away")

        self.assertEqual(rows[1].street, "Location N/A")
        self.assertEqual(rows[1].outcome, "Outcome Pending")
        self.assertEqual(rows[1].month, "N/A")
        self.assertEqual(rows[1].distance_label, "N/A")

    def test_limited_to_ten(self):
        report = CrimeReport(incidents=[_incident("burglary") for _ in range(15)])
        self.assertEqual(len(recent_incidents(report, 51.5, -0.12)), 10)


if __name__ == "__main__":
    unittest.main()
