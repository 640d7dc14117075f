"""
Fetch Configuration Models
==========================
Per-invocation inputs for the defect fetcher.

FetchConfiguration: pass criteria, taken from the publisher settings:
    skip_fetching_defects: never contact the service
    fail_build           : escalate the build to FAILURE when defects are found
    unstable             : flag the build unstable when defects are found

StreamTarget: what to query:
    instance      : name of a configured remote instance
    project       : project the stream belongs to (informational, copied to the result)
    stream        : stream name; empty means "not configured", fetch is skipped
    defect_filters: optional server-side filters

DefectFilters: user-facing filter selection, translated by to_filter_spec()
into the service's MergedDefectFilterSpec.
"""
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from defect_reader.models.remote import ComponentId, MergedDefectFilterSpec


class FetchConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True)

    skip_fetching_defects: bool = False
    fail_build: bool = False
    unstable: bool = False


class DefectFilters(BaseModel):
    actions: List[str] = []
    classifications: List[str] = []
    severities: List[str] = []
    impacts: List[str] = []
    components: List[str] = []
    checkers: List[str] = []
    ignored_checkers: List[str] = []
    cut_off_date: Optional[date] = None

    def to_filter_spec(self) -> MergedDefectFilterSpec:
        """
        Translate to the wire filter.

        Empty selections are left unset so the server does not filter on them.
        Ignored checkers are subtracted from the checker list; with no
        checker list they are sent as an exclusion list instead.
        """
        spec = MergedDefectFilterSpec()
        if self.actions:
            spec.action_name_list = list(self.actions)
        if self.classifications:
            spec.classification_name_list = list(self.classifications)
        if self.severities:
            spec.severity_name_list = list(self.severities)
        if self.impacts:
            spec.impact_name_list = list(self.impacts)
        if self.components:
            spec.component_id_list = [ComponentId(name=c) for c in self.components]

        ignored = set(self.ignored_checkers)
        if self.checkers:
            spec.checker_list = [c for c in self.checkers if c not in ignored]
        elif ignored:
            spec.checker_list = sorted(ignored)
            spec.checker_exclude = True

        if self.cut_off_date is not None:
            spec.first_detected_start_date = self.cut_off_date
        return spec


class StreamTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    instance: str = ""
    project: str = ""
    stream: Optional[str] = None
    defect_filters: Optional[DefectFilters] = None

    def filter_spec(self) -> MergedDefectFilterSpec:
        if self.defect_filters is None:
            return MergedDefectFilterSpec()
        return self.defect_filters.to_filter_spec()
