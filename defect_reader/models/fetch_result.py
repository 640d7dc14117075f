"""
Fetch Result Model
Artifact attached to a build after a successful defect fetch.
Lives as long as the build record it is attached to.
"""
from typing import List

from pydantic import BaseModel

from defect_reader.core.constants import RESULT_URL_NAME
from defect_reader.models.defect import CoverityDefect


class FetchResult(BaseModel):
    build_url: str
    project: str
    stream: str
    instance: str
    defects: List[CoverityDefect] = []

    url_name: str = RESULT_URL_NAME

    @property
    def defect_count(self) -> int:
        return len(self.defects)
