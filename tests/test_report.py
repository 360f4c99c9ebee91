"""
Tests for locating work items and building a report across them.
"""
from datetime import date

import pytest

from timelog.core.locator import locate_work_items
from timelog.core.report import build_report, collect_work_items, process_work_item
from timelog.exceptions import ExternalFetchFailure, MalformedRevision

from conftest import USER, FakeSource, raw_revision


class TestLocateWorkItems:

    def test_passes_window_to_source(self, fake_source, week):
        assert locate_work_items(fake_source, week) == [101, 102, 103]
        assert fake_source.queried == [week]

    def test_duplicates_are_dropped(self, week):
        source = FakeSource({}, work_item_ids=[5, 3, 5, 1, 3])

        assert locate_work_items(source, week) == [5, 3, 1]

    def test_unexpected_errors_become_fetch_failures(self, week):
        class Broken(FakeSource):
            def query_work_items(self, window):
                raise ConnectionError("no route to host")

        with pytest.raises(ExternalFetchFailure, match="no route to host"):
            locate_work_items(Broken({}), week)


class TestProcessWorkItem:

    def test_fetches_and_aggregates(self, fake_source, week):
        log = process_work_item(fake_source, 102, USER, week)

        assert fake_source.fetched == [102]
        assert log.title == "Review"
        assert log.totals == {date(2025, 1, 14): 1.0}

    def test_malformed_revision_fails_the_work_item(self, broken_source, week):
        with pytest.raises(MalformedRevision):
            process_work_item(broken_source, 202, USER, week)


class TestBuildReport:

    def test_totals_across_work_items(self, fake_source, week):
        report = build_report(fake_source, fake_source, USER, week)

        assert report.totals == {date(2025, 1, 14): 3.0, date(2025, 1, 15): 3.0}
        assert report.total_hours == 6.0
        assert [item.work_item_id for item in report.work_items] == [101, 102, 103]
        assert [item.has_entries for item in report.work_items] == [True, True, False]
        assert report.failures == []

    def test_failures_do_not_affect_other_work_items(self, broken_source, week):
        report = build_report(broken_source, broken_source, USER, week)

        assert report.totals == {date(2025, 1, 14): 2.0, date(2025, 1, 15): 3.0}
        assert [failure.work_item_id for failure in report.failures] == [201, 202]
        assert isinstance(report.failures[0].error, ExternalFetchFailure)
        assert isinstance(report.failures[1].error, MalformedRevision)

    def test_locator_failure_is_propagated(self, week):
        class Unreachable(FakeSource):
            def query_work_items(self, window):
                raise ExternalFetchFailure("401 Client Error: Unauthorized")

        source = Unreachable({101: []})
        with pytest.raises(ExternalFetchFailure):
            build_report(source, source, USER, week)
        assert source.fetched == []

    def test_unexpected_errors_propagate(self, week):
        source = FakeSource({101: RuntimeError("bug")})

        with pytest.raises(RuntimeError):
            build_report(source, source, USER, week)

    @pytest.mark.parametrize("max_workers", [1, 2, 8])
    def test_result_does_not_depend_on_concurrency(self, fake_source, week, max_workers):
        sequential = build_report(fake_source, fake_source, USER, week, max_workers=1)
        concurrent = build_report(fake_source, fake_source, USER, week, max_workers=max_workers)

        assert concurrent.totals == sequential.totals
        assert concurrent.work_items == sequential.work_items

    def test_order_of_work_items_does_not_change_totals(self, fake_source, week):
        forward = collect_work_items(fake_source, [101, 102, 103], USER, week)
        backward = collect_work_items(fake_source, [103, 102, 101], USER, week)

        assert forward.totals == backward.totals
        assert list(forward.totals) == list(backward.totals)
        assert [item.work_item_id for item in backward.work_items] == [103, 102, 101]

    def test_no_work_items(self, week):
        source = FakeSource({})
        report = build_report(source, source, USER, week)

        assert report.totals == {}
        assert report.total_hours == 0.0
        assert report.work_items == []

    def test_timezone_is_applied(self, week):
        source = FakeSource({1: [raw_revision(1, "2025-01-19T23:30:00Z", 1)]})

        assert build_report(source, source, USER, week).totals == {date(2025, 1, 19): 1.0}
        assert build_report(source, source, USER, week, timezone="Asia/Tokyo").totals == {}
