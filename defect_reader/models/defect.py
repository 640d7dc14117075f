"""
Coverity Defect Model
Local, read-only copy of one merged defect attached to a build result.
"""
from pydantic import BaseModel, ConfigDict

from defect_reader.models.remote import MergedDefect


class CoverityDefect(BaseModel):
    model_config = ConfigDict(frozen=True)

    cid: int
    checker_name: str
    function_name: str = ""
    file_path: str = ""

    @classmethod
    def from_merged(cls, defect: MergedDefect) -> "CoverityDefect":
        return cls(
            cid=defect.cid,
            checker_name=defect.checker_name,
            function_name=defect.function_display_name,
            file_path=defect.file_pathname,
        )
