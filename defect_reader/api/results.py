"""
GET /builds/{build_id}/coverity_defects
Serves the FetchResult attached to a build. This is the address the
"Coverity details" link in the build console points at.
"""
from fastapi import APIRouter, HTTPException

from defect_reader.core.constants import RESULT_URL_NAME
from defect_reader.services.results_writer import ResultsWriter
from defect_reader.state.build_store import build_store

router = APIRouter()


@router.get(f"/builds/{{build_id}}/{RESULT_URL_NAME}")
def get_results(build_id: str):
    build = build_store.get(build_id)
    if build is None:
        raise HTTPException(status_code=404, detail=f"Build {build_id} not found")
    action = build.get_action(RESULT_URL_NAME)
    if action is None:
        raise HTTPException(status_code=404, detail=f"No defect results attached to build {build_id}")
    return ResultsWriter.build_payload(action)
