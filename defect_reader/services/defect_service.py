"""
Defect Service Client
=====================
Client for the remote defect tracking service's merged-defects query.

CONTRACT:
  get_merged_defects_for_streams(stream_ids, filter_spec, page_spec, snapshot_scope)
      -> MergedDefectsPage

  Raises:
    DefectServiceError: the service answered but reported an error
                         (HTTP 4xx/5xx or an unreadable payload)
    httpx.HTTPError   : transport failure (connect, read, timeout)

No retries here. Callers decide what a failure means for the build.
"""
import logging
from typing import List, Optional, Protocol

import httpx
from pydantic import ValidationError

from defect_reader.core.constants import MERGED_DEFECTS_PATH
from defect_reader.models.remote import (
    MergedDefectFilterSpec,
    MergedDefectsPage,
    PageSpec,
    SnapshotScopeSpec,
    StreamId,
)

logger = logging.getLogger(__name__)


class DefectServiceError(Exception):
    """Error reported by the remote defect service."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DefectService(Protocol):

    def get_merged_defects_for_streams(
        self,
        stream_ids: List[StreamId],
        filter_spec: MergedDefectFilterSpec,
        page_spec: PageSpec,
        snapshot_scope: SnapshotScopeSpec,
    ) -> MergedDefectsPage: ...


class HttpDefectService:
    """
    httpx-backed DefectService.

    Use as a context manager so the underlying connection pool is closed:

        with HttpDefectService(base_url, user, password) as ds:
            page = ds.get_merged_defects_for_streams(...)
    """

    def __init__(
        self,
        base_url: str,
        user: str = "",
        password: str = "",
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        auth = httpx.BasicAuth(user, password) if user else None
        self.client = httpx.Client(
            base_url=self.base_url,
            auth=auth,
            timeout=timeout,
            headers={"Accept": "application/json", "User-Agent": "defect-reader"},
            transport=transport,
        )

    def __enter__(self) -> "HttpDefectService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.client.close()

    def get_merged_defects_for_streams(
        self,
        stream_ids: List[StreamId],
        filter_spec: MergedDefectFilterSpec,
        page_spec: PageSpec,
        snapshot_scope: SnapshotScopeSpec,
    ) -> MergedDefectsPage:
        payload = {
            "streamIds": [s.to_wire() for s in stream_ids],
            "filterSpec": filter_spec.to_wire(),
            "pageSpec": page_spec.to_wire(),
            "snapshotScope": snapshot_scope.to_wire(),
        }
        logger.debug(
            "Requesting merged defects start=%d size=%d",
            page_spec.start_index, page_spec.page_size,
        )
        response = self.client.post(MERGED_DEFECTS_PATH, json=payload)

        if response.is_error:
            raise DefectServiceError(
                f"Defect service returned HTTP {response.status_code}: {self._error_message(response)}",
                status_code=response.status_code,
            )

        try:
            return MergedDefectsPage.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise DefectServiceError(f"Unreadable merged defects page: {e}") from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Prefer the service's own error message over the raw body."""
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(body, dict):
            return str(body.get("message") or body.get("error") or body)
        return str(body)[:200]
