"""
Unit Tests: Defect Fetcher
===========================
Drives DefectFetcher against an in-memory defect service.
Covers the skip paths, page arithmetic with a moving total, the
fail/unstable decision and the failure path. No network.
"""
from typing import List, Optional

import httpx
import pytest

from defect_reader.agents.defect_fetcher import DefectFetcher
from defect_reader.models.build import BuildRecord, BuildResult
from defect_reader.models.fetch_config import DefectFilters, FetchConfiguration, StreamTarget
from defect_reader.models.remote import MergedDefect, MergedDefectsPage
from defect_reader.services.build_listener import BuildListener
from defect_reader.services.defect_service import DefectServiceError
from defect_reader.services.instance_registry import UnknownInstanceError


# ===================================================================
# Fakes
# ===================================================================
class FakeDefectService:
    """Serves one scripted total per page and records every request."""

    def __init__(self, totals: List[int], records_per_page: Optional[List[int]] = None, fail_on_page: Optional[int] = None, error: Optional[Exception] = None):
        self.totals = totals
        self.records_per_page = records_per_page
        self.fail_on_page = fail_on_page
        self.error = error or DefectServiceError("boom", status_code=500)
        self.calls = []
        self.closed = False
        self._next_cid = 1

    def get_merged_defects_for_streams(self, stream_ids, filter_spec, page_spec, snapshot_scope):
        page_no = len(self.calls)
        self.calls.append((stream_ids, filter_spec, page_spec, snapshot_scope))
        if self.fail_on_page is not None and page_no == self.fail_on_page:
            raise self.error

        total = self.totals[min(page_no, len(self.totals) - 1)]
        if self.records_per_page is not None:
            count = self.records_per_page[page_no]
        else:
            count = max(0, min(page_spec.page_size, total - page_spec.start_index))
        defects = []
        for _ in range(count):
            defects.append(MergedDefect(
                cid=self._next_cid,
                checker_name="NULL_RETURNS",
                function_display_name=f"fn_{self._next_cid}",
                file_pathname="src/main.c",
            ))
            self._next_cid += 1
        return MergedDefectsPage(total_number_of_records=total, merged_defects=defects)

    def close(self):
        self.closed = True

    @property
    def start_indices(self):
        return [c[2].start_index for c in self.calls]


class ExplodingProvider:
    """Service provider that must never be called."""

    def __call__(self, name):
        raise AssertionError("service provider must not be called")


@pytest.fixture
def build():
    return BuildRecord(build_id="42")


@pytest.fixture
def listener(build):
    return BuildListener(build.console)


def _target(stream="demo", **kwargs):
    return StreamTarget(instance="main", project="proj", stream=stream, **kwargs)


def _fetcher(build, listener, service, root_url=None):
    return DefectFetcher(build, listener, lambda name: service, root_url=root_url)


# ===================================================================
# Skip paths
# ===================================================================
class TestSkipPaths:

    def test_skip_fetching_does_nothing(self, build, listener):
        fetcher = DefectFetcher(build, listener, ExplodingProvider())
        fetcher.run(FetchConfiguration(skip_fetching_defects=True, fail_build=True), _target())

        assert build.actions == []
        assert build.result == BuildResult.SUCCESS
        assert build.unstable is False
        assert build.console == []

    @pytest.mark.parametrize("stream", ["", None])
    def test_missing_stream_logs_and_skips(self, build, listener, stream):
        fetcher = DefectFetcher(build, listener, ExplodingProvider())
        fetcher.run(FetchConfiguration(fail_build=True), _target(stream=stream))

        assert build.actions == []
        assert build.result == BuildResult.SUCCESS
        assert build.console == ["[Coverity] Stream has not been configured. Skipping fetching defects."]


# ===================================================================
# Pagination
# ===================================================================
class TestPagination:

    def test_single_page_example(self, build, listener):
        service = FakeDefectService(totals=[2])
        service._next_cid = 101
        _fetcher(build, listener, service).run(FetchConfiguration(fail_build=True), _target())

        result = build.actions[0]
        assert [d.cid for d in result.defects] == [101, 102]
        assert result.defects[0].checker_name == "NULL_RETURNS"
        assert result.defects[0].function_name == "fn_101"
        assert result.defects[0].file_path == "src/main.c"
        assert build.result == BuildResult.FAILURE
        assert service.start_indices == [0]

    def test_request_shape(self, build, listener):
        service = FakeDefectService(totals=[0])
        target = _target(defect_filters=DefectFilters(severities=["Major"]))
        _fetcher(build, listener, service).run(FetchConfiguration(), target)

        stream_ids, filter_spec, page_spec, snapshot_scope = service.calls[0]
        assert [s.name for s in stream_ids] == ["demo"]
        assert filter_spec.severity_name_list == ["Major"]
        assert page_spec.page_size == 1000
        assert page_spec.sort_ascending is True
        assert snapshot_scope.show_selector == "last()"

    def test_missing_filters_send_empty_spec(self, build, listener):
        service = FakeDefectService(totals=[0])
        _fetcher(build, listener, service).run(FetchConfiguration(), _target())

        filter_spec = service.calls[0][1]
        assert filter_spec.to_wire() == {}

    def test_pages_until_server_total(self, build, listener):
        service = FakeDefectService(totals=[2500])
        _fetcher(build, listener, service).run(FetchConfiguration(), _target())

        assert service.start_indices == [0, 1000, 2000]
        assert len(build.actions[0].defects) == 2500
        cids = [d.cid for d in build.actions[0].defects]
        assert cids == sorted(cids)

    def test_growing_total_extends_past_default_cap(self, build, listener):
        service = FakeDefectService(totals=[4500])
        _fetcher(build, listener, service).run(FetchConfiguration(), _target())

        assert service.start_indices == [0, 1000, 2000, 3000, 4000]
        assert len(build.actions[0].defects) == 4500

    def test_shrinking_total_stops_early(self, build, listener):
        service = FakeDefectService(totals=[5000, 1200], records_per_page=[1000, 200])
        _fetcher(build, listener, service).run(FetchConfiguration(), _target())

        assert service.start_indices == [0, 1000]
        assert len(build.actions[0].defects) == 1200

    def test_progress_lines_after_first_page(self, build, listener):
        service = FakeDefectService(totals=[2500])
        _fetcher(build, listener, service).run(FetchConfiguration(), _target())

        progress = [l for l in build.console if "(fetched" in l]
        assert progress == [
            '[Coverity] Fetching defects for stream "demo" (fetched 1000 of 2500)',
            '[Coverity] Fetching defects for stream "demo" (fetched 2000 of 2500)',
        ]

    def test_service_closed_after_fetch(self, build, listener):
        service = FakeDefectService(totals=[1])
        _fetcher(build, listener, service).run(FetchConfiguration(), _target())
        assert service.closed is True


# ===================================================================
# Decision logic
# ===================================================================
class TestDecision:

    def test_fail_build_escalates_to_failure(self, build, listener):
        build.result = BuildResult.UNSTABLE
        _fetcher(build, listener, FakeDefectService(totals=[3])).run(
            FetchConfiguration(fail_build=True), _target()
        )
        assert build.result == BuildResult.FAILURE

    @pytest.mark.parametrize("worse", [BuildResult.FAILURE, BuildResult.NOT_BUILT, BuildResult.ABORTED])
    def test_fail_build_never_downgrades(self, build, listener, worse):
        build.result = worse
        _fetcher(build, listener, FakeDefectService(totals=[3])).run(
            FetchConfiguration(fail_build=True), _target()
        )
        assert build.result == worse

    def test_defects_without_fail_build_keep_result(self, build, listener):
        _fetcher(build, listener, FakeDefectService(totals=[3])).run(FetchConfiguration(), _target())
        assert build.result == BuildResult.SUCCESS
        assert build.unstable is False
        assert "[Coverity] Found 3 defects matching all filters" in build.console

    def test_unstable_flag_set_independently(self, build, listener):
        build.result = BuildResult.ABORTED
        _fetcher(build, listener, FakeDefectService(totals=[1])).run(
            FetchConfiguration(fail_build=True, unstable=True), _target()
        )
        assert build.result == BuildResult.ABORTED
        assert build.unstable is True

    def test_unstable_only(self, build, listener):
        _fetcher(build, listener, FakeDefectService(totals=[1])).run(
            FetchConfiguration(unstable=True), _target()
        )
        assert build.result == BuildResult.SUCCESS
        assert build.unstable is True
        assert build.effective_result == BuildResult.UNSTABLE

    def test_no_defects_attaches_empty_result(self, build, listener):
        _fetcher(build, listener, FakeDefectService(totals=[0])).run(
            FetchConfiguration(fail_build=True, unstable=True), _target()
        )
        assert build.result == BuildResult.SUCCESS
        assert build.unstable is False
        assert len(build.actions) == 1
        result = build.actions[0]
        assert result.defects == []
        assert (result.project, result.stream, result.instance) == ("proj", "demo", "main")
        assert result.build_url == "builds/42/"
        assert "[Coverity] No defects matched all filters." in build.console

    def test_details_link_with_root_url(self, build, listener):
        _fetcher(build, listener, FakeDefectService(totals=[0]), root_url="http://ci.local/").run(
            FetchConfiguration(), _target()
        )
        assert build.console[-1] == "Coverity details: http://ci.local/builds/42/coverity_defects"

    def test_no_details_link_without_root_url(self, build, listener):
        _fetcher(build, listener, FakeDefectService(totals=[0])).run(FetchConfiguration(), _target())
        assert not any(l.startswith("Coverity details") for l in build.console)

    def test_get_latest_defects_for_build_alias(self, build, listener):
        fetcher = _fetcher(build, listener, FakeDefectService(totals=[1]))
        fetcher.get_latest_defects_for_build(FetchConfiguration(), _target())
        assert len(build.actions) == 1


# ===================================================================
# Failure path
# ===================================================================
class TestFailures:

    @pytest.mark.parametrize("error", [
        DefectServiceError("remote says no", status_code=500),
        httpx.ConnectError("connection refused"),
        OSError("broken pipe"),
    ])
    def test_error_fails_build_without_result(self, build, listener, error):
        service = FakeDefectService(totals=[2500], fail_on_page=1, error=error)
        _fetcher(build, listener, service).run(FetchConfiguration(), _target())

        assert build.result == BuildResult.FAILURE
        assert build.actions == []
        assert "ERROR: [Coverity] An error occurred while fetching defects" in build.console
        assert any("Traceback" in l for l in build.console)
        assert service.closed is True

    def test_error_overrides_better_pass_criteria(self, build, listener):
        service = FakeDefectService(totals=[1], fail_on_page=0)
        _fetcher(build, listener, service).run(
            FetchConfiguration(fail_build=False, unstable=True), _target()
        )
        assert build.result == BuildResult.FAILURE
        assert build.unstable is False

    def test_unknown_instance_fails_build(self, build, listener):
        def provider(name):
            raise UnknownInstanceError(f"Instance '{name}' is not configured")

        DefectFetcher(build, listener, provider).run(FetchConfiguration(), _target())
        assert build.result == BuildResult.FAILURE
        assert build.actions == []

    @pytest.mark.parametrize("worse", [BuildResult.NOT_BUILT, BuildResult.ABORTED])
    def test_error_keeps_worse_result(self, build, listener, worse):
        build.result = worse
        service = FakeDefectService(totals=[1], fail_on_page=0)
        _fetcher(build, listener, service).run(FetchConfiguration(), _target())

        assert build.result == worse
        assert build.actions == []
