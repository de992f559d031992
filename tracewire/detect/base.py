"""SDK state model and the build-scoped, single-assignment state holder.

The holder is written exactly once, from a dependency-resolution callback
that may run on any thread, and read by every instrumentation invocation of
the build. Readers wait on a :class:`concurrent.futures.Future` rather than a
flag, so they either observe the terminal state or fail loudly.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeout
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from tracewire.errors import SdkStateNotResolvedError
from tracewire.logging import get_logger

if TYPE_CHECKING:
    from tracewire.host import Project

logger = get_logger("tracewire.detect")


class SdkStateKind(str, Enum):
    UNKNOWN = "UNKNOWN"
    NOT_PRESENT = "NOT_PRESENT"
    PRESENT = "PRESENT"


class SdkState(BaseModel):
    """Normalized detection result.

    Attributes
    ----------
    kind: SdkStateKind
        ``UNKNOWN`` only before detection completes; never handed to readers.
    version: str | None
        Resolved version of the matched module, when present.
    has_performance_support: bool
        Whether that version ships the performance-monitoring API the
        instrumentation calls into.
    """

    model_config = ConfigDict(frozen=True)

    kind: SdkStateKind
    version: str | None = None
    has_performance_support: bool = False

    @classmethod
    def not_present(cls) -> SdkState:
        return cls(kind=SdkStateKind.NOT_PRESENT)

    @classmethod
    def present(cls, version: str, has_performance_support: bool) -> SdkState:
        return cls(
            kind=SdkStateKind.PRESENT,
            version=version,
            has_performance_support=has_performance_support,
        )

    @property
    def is_present(self) -> bool:
        return self.kind is SdkStateKind.PRESENT


UNKNOWN = SdkState(kind=SdkStateKind.UNKNOWN)


class SdkStateHolder:
    SERVICE_NAME = "sentrySdkStateHolder"

    def __init__(self, project_path: str) -> None:
        self.project_path = project_path
        self.generation = 0
        self._lock = threading.Lock()
        self._cell: Future[SdkState] = Future()
        # unresolved cells of earlier generations, settled by the next write
        self._stale: list[Future[SdkState]] = []

    @classmethod
    def register(cls, project: Project) -> SdkStateHolder:
        """Return the holder for *project*, creating it once per build."""
        return project.build.services.register_if_absent(
            f"{cls.SERVICE_NAME}{project.path}", lambda: cls(project.path)
        )

    @property
    def resolved(self) -> bool:
        with self._lock:
            return self._cell.done()

    def set(self, state: SdkState) -> bool:
        """Record the terminal state. Returns False if one was already set."""
        if state.kind is SdkStateKind.UNKNOWN:
            raise ValueError("SdkStateHolder only accepts terminal states")
        with self._lock:
            if self._cell.done():
                current = self._cell.result()
                if current != state:
                    logger.warning(
                        "SDK state for %s already resolved as %s, ignoring %s",
                        self.project_path,
                        current.kind.value,
                        state.kind.value,
                    )
                return False
            self._cell.set_result(state)
            stale, self._stale = self._stale, []
            for cell in stale:
                cell.set_result(state)
        logger.info("SDK state for %s resolved: %s", self.project_path, state.kind.value)
        return True

    def get(self, timeout: float | None = None) -> SdkState:
        """Block until the terminal state is available.

        Raises :class:`SdkStateNotResolvedError` if *timeout* elapses first.
        """
        with self._lock:
            cell = self._cell
        try:
            return cell.result(timeout=timeout)
        except FutureTimeout as exc:
            raise SdkStateNotResolvedError(
                f"SDK state for {self.project_path} was not resolved within {timeout}s; "
                "was the runtime classpath resolved before instrumentation started?"
            ) from exc

    def peek(self) -> SdkState:
        """Non-blocking view for diagnostics; may return ``UNKNOWN``."""
        with self._lock:
            return self._cell.result() if self._cell.done() else UNKNOWN

    def invalidate(self) -> int:
        """Start a new generation with an empty cell; returns the new generation.

        Readers still blocked on the previous cell receive the next terminal
        state written to this holder.
        """
        with self._lock:
            if not self._cell.done():
                self._stale.append(self._cell)
            self._cell = Future()
            self.generation += 1
            return self.generation
