"""
Output Formatter
================
Single place that renders defects and result summaries as text.

Used by the build console and the API response so both show identical
strings.

Format (one defect):
    CID {cid}: {checker_name} in {function_name} ({file_path})
"""
from defect_reader.models.defect import CoverityDefect

UNKNOWN_FUNCTION = "<unknown function>"


def format_defect(defect: CoverityDefect) -> str:
    """
    Render a single defect.

    Defects reported outside any function (globals, macros) carry an empty
    function name; those print as UNKNOWN_FUNCTION.
    """
    function_name = defect.function_name or UNKNOWN_FUNCTION
    return f"CID {defect.cid}: {defect.checker_name} in {function_name} ({defect.file_path})"


def format_summary(project: str, stream: str, defect_count: int) -> str:
    noun = "defect" if defect_count == 1 else "defects"
    return f"{defect_count} {noun} in stream \"{stream}\" of project \"{project}\""
