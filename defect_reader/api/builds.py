"""
Build Endpoints
===============
POST /api/builds                           : register a build record
GET  /api/builds/{build_id}                : build result, unstable flag, console
POST /api/builds/{build_id}/fetch-defects  : run the defect fetcher for a build

The fetch endpoint is a plain `def`: the fetch is blocking network I/O and
FastAPI runs it in its threadpool.
"""
import logging
import re
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, field_validator

from defect_reader.agents.defect_fetcher import DefectFetcher
from defect_reader.core.config import RESULTS_DIR, ROOT_URL
from defect_reader.core.output_formatter import format_defect
from defect_reader.models.build import BuildRecord, BuildResult
from defect_reader.models.fetch_config import FetchConfiguration, StreamTarget
from defect_reader.services.build_listener import BuildListener
from defect_reader.services.instance_registry import resolve_defect_service
from defect_reader.services.results_writer import ResultsWriter
from defect_reader.state.build_store import build_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Builds"])

# Build ids become directory names under RESULTS_DIR
_BUILD_ID_RE = re.compile(r"^[A-Za-z0-9._-]+$")


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------
class CreateBuildRequest(BaseModel):
    build_id: Optional[str] = None
    result: BuildResult = BuildResult.SUCCESS

    @field_validator("build_id")
    @classmethod
    def validate_build_id(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if v in (".", "..") or not _BUILD_ID_RE.fullmatch(v):
            raise ValueError("build_id may only contain letters, digits, '.', '_' and '-'")
        return v


class BuildResponse(BaseModel):
    build_id: str
    url: str
    result: BuildResult
    unstable: bool
    effective_result: BuildResult
    actions: List[str]
    console: List[str]


class FetchDefectsRequest(BaseModel):
    config: FetchConfiguration = FetchConfiguration()
    target: StreamTarget


class FetchDefectsResponse(BaseModel):
    build_id: str
    result: BuildResult
    unstable: bool
    result_attached: bool
    defect_count: int
    defects: List[str]
    console: List[str]


def _to_response(build: BuildRecord) -> BuildResponse:
    return BuildResponse(
        build_id=build.build_id,
        url=build.url,
        result=build.result,
        unstable=build.unstable,
        effective_result=build.effective_result,
        actions=[a.url_name for a in build.actions],
        console=build.console,
    )


def _get_build_or_404(build_id: str) -> BuildRecord:
    build = build_store.get(build_id)
    if build is None:
        raise HTTPException(status_code=404, detail=f"Build {build_id} not found")
    return build


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.post("/builds", response_model=BuildResponse, status_code=201)
def create_build(request: CreateBuildRequest):
    try:
        build = build_store.create(request.build_id, request.result)
    except KeyError as exc:
        raise HTTPException(status_code=409, detail=str(exc.args[0]))
    return _to_response(build)


@router.get("/builds/{build_id}", response_model=BuildResponse)
def get_build(build_id: str):
    return _to_response(_get_build_or_404(build_id))


@router.post("/builds/{build_id}/fetch-defects", response_model=FetchDefectsResponse)
def fetch_defects(build_id: str, request: FetchDefectsRequest):
    """
    Fetch the latest defects for the target stream and apply the pass criteria.

    A failed fetch is reported through the build result (FAILURE), not as an
    HTTP error: the request itself succeeded.
    """
    build = _get_build_or_404(build_id)
    console_start = len(build.console)
    actions_before = len(build.actions)

    listener = BuildListener(build.console)
    fetcher = DefectFetcher(build, listener, resolve_defect_service, root_url=ROOT_URL)

    logger.info("[API] Fetching defects for build %s (stream=%s)", build_id, request.target.stream)
    fetcher.run(request.config, request.target)

    attached = len(build.actions) > actions_before
    defects: List[str] = []
    defect_count = 0
    if attached:
        action = build.actions[-1]
        defect_count = action.defect_count
        defects = [format_defect(d) for d in action.defects]
        if RESULTS_DIR:
            ResultsWriter.write_result(action, build_id, RESULTS_DIR)

    logger.info(
        "[API] Build %s after fetch: result=%s unstable=%s defects=%d",
        build_id, build.result.value, build.unstable, defect_count,
    )
    return FetchDefectsResponse(
        build_id=build_id,
        result=build.result,
        unstable=build.unstable,
        result_attached=attached,
        defect_count=defect_count,
        defects=defects,
        console=build.console[console_start:],
    )
