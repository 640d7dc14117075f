"""
Build Store
In-memory registry of build records served by the API.
Scoped to the process; nothing survives a restart.
"""
import logging
import threading
import uuid
from typing import Dict, Optional

from defect_reader.models.build import BuildRecord, BuildResult

logger = logging.getLogger(__name__)


class BuildStore:

    def __init__(self) -> None:
        self._builds: Dict[str, BuildRecord] = {}
        self._lock = threading.Lock()

    def create(self, build_id: Optional[str] = None, result: BuildResult = BuildResult.SUCCESS) -> BuildRecord:
        build_id = build_id or str(uuid.uuid4())[:12]
        with self._lock:
            if build_id in self._builds:
                raise KeyError(f"Build {build_id} already exists")
            build = BuildRecord(build_id=build_id, result=result)
            self._builds[build_id] = build
        logger.info("Registered build %s (result=%s)", build_id, result.value)
        return build

    def get(self, build_id: str) -> Optional[BuildRecord]:
        with self._lock:
            return self._builds.get(build_id)

    def clear(self) -> None:
        with self._lock:
            self._builds.clear()


build_store = BuildStore()
