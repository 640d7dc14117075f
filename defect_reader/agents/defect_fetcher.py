"""
Defect Fetcher Agent
====================
Reads the defects of a stream after the commit step of a build has
finished, attaches them to the build as a FetchResult and applies the
configured pass criteria.

Flow:
    skip check → stream check → paginated fetch → conversion
    → fail/unstable decision → attach FetchResult → details link

Failure semantics:
    Any service, transport or configuration error while fetching fails the
    build unconditionally (pass criteria are not consulted), logs the stack
    trace to the build's error channel and attaches nothing. No retry.

Pagination:
    Pages of PAGE_SIZE are requested in ascending server order. The loop
    bound starts at DEFAULT_DEFECT_CAP and is replaced by the server's
    totalNumberOfRecords after every page, so it can shrink or grow.
    Stable ordering across pages is assumed; if the snapshot changes
    mid-fetch the result may hold duplicates or miss records.
"""
import logging
from typing import Callable, List, Optional

import httpx

from defect_reader.core.constants import (
    DEFAULT_DEFECT_CAP,
    LAST_SNAPSHOT,
    LOG_PREFIX,
    PAGE_SIZE,
)
from defect_reader.models.build import BuildResult, ResultSink
from defect_reader.models.defect import CoverityDefect
from defect_reader.models.fetch_config import FetchConfiguration, StreamTarget
from defect_reader.models.fetch_result import FetchResult
from defect_reader.models.remote import MergedDefect, PageSpec, SnapshotScopeSpec, StreamId
from defect_reader.services.build_listener import BuildListener
from defect_reader.services.defect_service import DefectService, DefectServiceError
from defect_reader.services.instance_registry import InstanceConfigError

logger = logging.getLogger(__name__)

# instance name → service for that instance
ServiceProvider = Callable[[str], DefectService]

FETCH_ERRORS = (DefectServiceError, InstanceConfigError, httpx.HTTPError, OSError)


class DefectFetcher:
    """
    Fetches the latest defects of a stream for one build.

    Usage:
        fetcher = DefectFetcher(build, listener, resolve_defect_service, root_url)
        fetcher.run(config, target)
    """

    def __init__(
        self,
        build: ResultSink,
        listener: BuildListener,
        service_provider: ServiceProvider,
        root_url: Optional[str] = None,
    ) -> None:
        self.build = build
        self.listener = listener
        self.service_provider = service_provider
        self.root_url = root_url

    def run(self, config: FetchConfiguration, target: StreamTarget) -> None:
        if config.skip_fetching_defects:
            return

        if not target.stream:
            self.listener.log(f"{LOG_PREFIX} Stream has not been configured. Skipping fetching defects.")
            return

        self.listener.log(f"{LOG_PREFIX} Fetching defects for stream \"{target.stream}\"")

        try:
            defects = self._get_defects_for_snapshot(target)
        except FETCH_ERRORS as e:
            self.listener.error(f"{LOG_PREFIX} An error occurred while fetching defects", e)
            self.build.set_result(BuildResult.FAILURE)
            return

        matching_defects = [CoverityDefect.from_merged(d) for d in defects]

        if matching_defects:
            self.listener.log(
                f"{LOG_PREFIX} Found {len(matching_defects)} defects matching all filters"
            )
            if config.fail_build and self.build.result.is_better_than(BuildResult.FAILURE):
                self.build.set_result(BuildResult.FAILURE)

            # independent of the failure escalation above
            if config.unstable:
                self.build.mark_unstable()
        else:
            self.listener.log(f"{LOG_PREFIX} No defects matched all filters.")

        action = FetchResult(
            build_url=self.build.url,
            project=target.project,
            stream=target.stream,
            instance=target.instance,
            defects=matching_defects,
        )
        self.build.add_action(action)

        if self.root_url is not None:
            self.listener.log(f"Coverity details: {self.root_url}{self.build.url}{action.url_name}")

    # Name the build pipeline calls after the commit step
    get_latest_defects_for_build = run

    def _get_defects_for_snapshot(self, target: StreamTarget) -> List[MergedDefect]:
        service = self.service_provider(target.instance)
        try:
            return self._fetch_pages(service, target)
        finally:
            close = getattr(service, "close", None)
            if close is not None:
                close()

    def _fetch_pages(self, service: DefectService, target: StreamTarget) -> List[MergedDefect]:
        merged: List[MergedDefect] = []

        stream_ids = [StreamId(name=target.stream)]
        filter_spec = target.filter_spec()
        snapshot_scope = SnapshotScopeSpec(show_selector=LAST_SNAPSHOT)

        page_size = PAGE_SIZE
        defect_size = DEFAULT_DEFECT_CAP
        page_start = 0
        while page_start < defect_size:
            if page_start >= page_size:
                self.listener.log(
                    f"{LOG_PREFIX} Fetching defects for stream \"{target.stream}\" "
                    f"(fetched {page_start} of {defect_size})"
                )

            page_spec = PageSpec(page_size=page_size, start_index=page_start, sort_ascending=True)
            page = service.get_merged_defects_for_streams(stream_ids, filter_spec, page_spec, snapshot_scope)

            # server total is authoritative from here on
            defect_size = page.total_number_of_records
            merged.extend(page.merged_defects)
            page_start += page_size

        logger.debug("Fetched %d merged defects for stream %s", len(merged), target.stream)
        return merged
