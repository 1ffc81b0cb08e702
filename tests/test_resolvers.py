import unittest
from datetime import date, datetime, timedelta, timezone

from crimewatch.domain import AdministrativeArea, AvailablePeriod, BoundaryPoint
from crimewatch.errors import FailureKind, FetchCancelled, TransportError
from crimewatch.resolvers import AreaResolver, BoundaryResolver, PeriodResolver


class FakeSource:
    def __init__(self):
        self.periods = [AvailablePeriod(date="2024-02"), AvailablePeriod(date="2024-03")]
        self.area = AdministrativeArea(force="metropolitan", neighbourhood="E1")
        self.boundary = [BoundaryPoint(latitude="51.1", longitude="-0.1")]
        self.error = None
        self.calls = []

    def _maybe_fail(self):
        if self.error is not None:
            raise self.error

    def fetch_available_periods(self, *, cancel=None, force_refresh=False):
        self.calls.append("periods")
        self._maybe_fail()
        return self.periods

    def locate_neighbourhood(self, latitude, longitude, *, cancel=None, force_refresh=False):
        self.calls.append("area")
        self._maybe_fail()
        return self.area

    def fetch_boundary(self, force_id, neighbourhood_id, *, cancel=None, force_refresh=False):
        self.calls.append("boundary")
        self._maybe_fail()
        return self.boundary


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 4, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


class TestPeriodResolver(unittest.TestCase):
    def setUp(self):
        self.source = FakeSource()
        self.clock = FakeClock()
        self.resolver = PeriodResolver(self.source, ttl_hours=24, clock=self.clock)

    def test_picks_latest_month(self):
        res = self.resolver.resolve_latest_period()
        self.assertTrue(res.ok)
        self.assertEqual(res.value, date(2024, 3, 1))

    def test_cached_within_ttl(self):
        self.resolver.resolve_latest_period()
        self.clock.now += timedelta(hours=23)
        self.resolver.resolve_latest_period()
        self.assertEqual(self.source.calls, ["periods"])

    def test_refetches_after_ttl(self):
        self.resolver.resolve_latest_period()
        self.clock.now += timedelta(hours=25)
        self.source.periods = [AvailablePeriod(date="2024-04")]
        self.assertEqual(self.resolver.resolve_latest_period().value, date(2024, 4, 1))
        self.assertEqual(self.source.calls, ["periods", "periods"])

    def test_force_refresh_bypasses_ttl(self):
        self.resolver.resolve_latest_period()
        self.resolver.resolve_latest_period(force_refresh=True)
        self.assertEqual(self.source.calls, ["periods", "periods"])

    def test_failure_without_cache(self):
        self.source.error = TransportError("down")
        res = self.resolver.resolve_latest_period()
        self.assertIsNone(res.value)
        self.assertIs(res.error.kind, FailureKind.TRANSPORT)

    def test_failure_falls_back_to_cached_period(self):
        self.resolver.resolve_latest_period()
        self.source.error = TransportError("down")
        res = self.resolver.resolve_latest_period(force_refresh=True)
        self.assertEqual(res.value, date(2024, 3, 1))
        self.assertFalse(res.ok)

    def test_empty_listing_is_not_determined(self):
        self.source.periods = []
        res = self.resolver.resolve_latest_period()
        self.assertIsNone(res.value)
        self.assertIs(res.error.kind, FailureKind.NOT_DETERMINED)

    def test_garbage_month_is_parse_error(self):
        self.source.periods = [AvailablePeriod(date="March")]
        res = self.resolver.resolve_latest_period()
        self.assertIs(res.error.kind, FailureKind.PARSE)


class TestAreaResolver(unittest.TestCase):
    def test_same_coordinate_is_memoized(self):
        source = FakeSource()
        resolver = AreaResolver(source)
        resolver.resolve_area(51.5, -0.12)
        res = resolver.resolve_area(51.5, -0.12)
        self.assertEqual(res.value.neighbourhood_id, "E1")
        self.assertEqual(source.calls, ["area"])

    def test_new_coordinate_hits_source(self):
        source = FakeSource()
        resolver = AreaResolver(source)
        resolver.resolve_area(51.5, -0.12)
        resolver.resolve_area(51.6, -0.12)
        self.assertEqual(source.calls, ["area", "area"])

    def test_cancelled(self):
        source = FakeSource()
        source.error = FetchCancelled("stop")
        res = AreaResolver(source).resolve_area(51.5, -0.12)
        self.assertTrue(res.cancelled)
        self.assertIsNone(res.value)


class TestBoundaryResolver(unittest.TestCase):
    def test_cached_per_neighbourhood(self):
        source = FakeSource()
        resolver = BoundaryResolver(source)
        resolver.resolve_boundary("metropolitan", "E1")
        resolver.resolve_boundary("metropolitan", "E1")
        self.assertEqual(source.calls, ["boundary"])
        resolver.resolve_boundary("metropolitan", "E2")
        self.assertEqual(source.calls, ["boundary", "boundary"])

    def test_empty_boundary_is_not_cached(self):
        source = FakeSource()
        source.boundary = []
        resolver = BoundaryResolver(source)
        res = resolver.resolve_boundary("metropolitan", "E1")
        self.assertEqual(res.value, [])
        self.assertIs(res.error.kind, FailureKind.NOT_DETERMINED)
        self.assertIsNone(resolver.cached)

    def test_failure_clears_cache(self):
        source = FakeSource()
        resolver = BoundaryResolver(source)
        resolver.resolve_boundary("metropolitan", "E1")
        source.error = TransportError("down")
        res = resolver.resolve_boundary("metropolitan", "E1", force_refresh=True)
        self.assertIsNone(res.value)
        self.assertIsNone(resolver.cached)

    def test_cancel_keeps_cache(self):
        source = FakeSource()
        resolver = BoundaryResolver(source)
        resolver.resolve_boundary("metropolitan", "E1")
        source.error = FetchCancelled("stop")
        res = resolver.resolve_boundary("metropolitan", "E1", force_refresh=True)
        self.assertTrue(res.cancelled)
        self.assertIsNotNone(resolver.cached)


if __name__ == "__main__":
    unittest.main()
