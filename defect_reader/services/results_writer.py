"""
Results Writer
==============
Persists an attached FetchResult as JSON next to the build's other records.

Layout:
    <results_dir>/<build_id>/coverity_defects.json
"""
import json
import logging
import os
from typing import Any, Dict

from defect_reader.core.output_formatter import format_defect, format_summary
from defect_reader.models.fetch_result import FetchResult

logger = logging.getLogger(__name__)


class ResultsWriter:
    """
    Writes fetch results for the dashboard and for archival.
    """

    @staticmethod
    def build_payload(result: FetchResult) -> Dict[str, Any]:
        data = result.model_dump(mode="json")
        data["summary"] = format_summary(result.project, result.stream, result.defect_count)
        data["formatted_defects"] = [format_defect(d) for d in result.defects]
        return data

    @staticmethod
    def write_result(result: FetchResult, build_id: str, results_dir: str) -> bool:
        """
        Write result under results_dir. Returns False (and logs) on I/O failure
        or when build_id would resolve outside results_dir.
        """
        root = os.path.realpath(results_dir)
        build_dir = os.path.realpath(os.path.join(root, build_id))
        if build_dir == root or os.path.commonpath([root, build_dir]) != root:
            logger.error("Refusing to write defect results for build %r outside %s", build_id, root)
            return False

        try:
            os.makedirs(build_dir, exist_ok=True)
            output_path = os.path.join(build_dir, f"{result.url_name}.json")

            logger.info("Writing defect results to %s", output_path)
            with open(output_path, "w", encoding="utf-8") as f:
                json.dump(ResultsWriter.build_payload(result), f, indent=2)
            return True

        except OSError as e:
            logger.error("Failed to write defect results for build %s: %s", build_id, e, exc_info=True)
            return False
