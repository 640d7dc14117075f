"""
Remote Wire Models
==================
Pydantic data-transfer objects for the defect service's
getMergedDefectsForStreams call.

The service speaks camelCase JSON; every model here serializes with
camelCase aliases and accepts either spelling on input.

Fields (MergedDefect):
    cid                  : merged defect id, stable across snapshots
    checker_name         : checker that reported the defect (e.g. NULL_RETURNS)
    function_display_name: enclosing function, empty for file-level defects
    file_pathname        : path of the file the defect's main event is in
"""
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from defect_reader.core.constants import LAST_SNAPSHOT, PAGE_SIZE


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class StreamId(WireModel):
    name: str


class ComponentId(WireModel):
    name: str


class MergedDefectFilterSpec(WireModel):
    """Server-side filter; an instance with every field unset matches all defects."""
    action_name_list: Optional[List[str]] = None
    classification_name_list: Optional[List[str]] = None
    severity_name_list: Optional[List[str]] = None
    impact_name_list: Optional[List[str]] = None
    component_id_list: Optional[List[ComponentId]] = None
    checker_list: Optional[List[str]] = None
    checker_exclude: Optional[bool] = None
    first_detected_start_date: Optional[date] = None


class PageSpec(WireModel):
    page_size: int = PAGE_SIZE
    start_index: int = 0
    sort_ascending: bool = True


class SnapshotScopeSpec(WireModel):
    show_selector: str = LAST_SNAPSHOT


class MergedDefect(WireModel):
    cid: int
    checker_name: str
    function_display_name: str = ""
    file_pathname: str = ""


class MergedDefectsPage(WireModel):
    total_number_of_records: int
    merged_defects: List[MergedDefect] = []
