"""
Build Models
============
Minimal build-host model the fetcher reports into.

BuildResult: ordered outcome severity. Order (best → worst):
    SUCCESS < UNSTABLE < FAILURE < NOT_BUILT < ABORTED

ResultSink: what the fetcher needs from a build: current result,
set_result(), mark_unstable(), add_action() and the build's relative url.

BuildRecord: in-process ResultSink used by the API and tests. Any other
build orchestrator can be plugged in by implementing ResultSink.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol

from defect_reader.models.fetch_result import FetchResult


class BuildResult(str, Enum):
    SUCCESS = "SUCCESS"
    UNSTABLE = "UNSTABLE"
    FAILURE = "FAILURE"
    NOT_BUILT = "NOT_BUILT"
    ABORTED = "ABORTED"

    @property
    def ordinal(self) -> int:
        return _ORDINALS[self]

    def is_better_than(self, other: "BuildResult") -> bool:
        return self.ordinal < other.ordinal

    def is_worse_than(self, other: "BuildResult") -> bool:
        return self.ordinal > other.ordinal


_ORDINALS = {
    BuildResult.SUCCESS: 0,
    BuildResult.UNSTABLE: 1,
    BuildResult.FAILURE: 2,
    BuildResult.NOT_BUILT: 3,
    BuildResult.ABORTED: 4,
}


class ResultSink(Protocol):
    @property
    def url(self) -> str: ...

    @property
    def result(self) -> BuildResult: ...

    def set_result(self, result: BuildResult) -> None: ...

    def mark_unstable(self) -> None: ...

    def add_action(self, action: FetchResult) -> None: ...


@dataclass
class BuildRecord:
    build_id: str
    result: BuildResult = BuildResult.SUCCESS
    unstable: bool = False
    actions: List[FetchResult] = field(default_factory=list)
    console: List[str] = field(default_factory=list)

    @property
    def url(self) -> str:
        return f"builds/{self.build_id}/"

    def set_result(self, result: BuildResult) -> None:
        """Results only get worse; a better result than the current one is ignored."""
        if result.is_worse_than(self.result):
            self.result = result

    def mark_unstable(self) -> None:
        self.unstable = True

    def add_action(self, action: FetchResult) -> None:
        self.actions.append(action)

    def get_action(self, url_name: str) -> Optional[FetchResult]:
        """Latest attached action served under url_name."""
        for action in reversed(self.actions):
            if action.url_name == url_name:
                return action
        return None

    @property
    def effective_result(self) -> BuildResult:
        """Result as the host reports it once the unstable flag is applied."""
        if self.unstable and self.result.is_better_than(BuildResult.UNSTABLE):
            return BuildResult.UNSTABLE
        return self.result
