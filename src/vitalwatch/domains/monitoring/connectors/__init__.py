"""Patient data connectors: abstraction layer for snapshot retrieval."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Protocol, runtime_checkable

from vitalwatch.domains.monitoring.domain_logic.models import PatientSnapshot

FetchErrorKind = Literal["connection", "timeout", "http_status", "invalid_payload"]


@dataclass(frozen=True)
class FetchError:
    """Why a fetch from a data source failed."""

    kind: FetchErrorKind
    message: str


@dataclass(frozen=True)
class FetchResult:
    """Either snapshots or a FetchError. Sources return this instead of raising."""

    snapshots: list[PatientSnapshot] = field(default_factory=list)
    error: FetchError | None = None
    source: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, snapshots: list[PatientSnapshot], source: str = "") -> FetchResult:
        return cls(snapshots=list(snapshots), source=source)

    @classmethod
    def failure(cls, kind: FetchErrorKind, message: str, source: str = "") -> FetchResult:
        return cls(error=FetchError(kind=kind, message=message), source=source)


@runtime_checkable
class PatientDataSource(Protocol):
    """Abstract interface for patient snapshot retrieval.

    Views call these methods without knowing whether data comes from the
    remote prediction service or the mock generators.
    """

    async def check_health(self) -> bool:
        """Whether the backing service is alive."""
        ...

    async def get_recent_snapshots(self, limit: int = 1000) -> FetchResult:
        """Up to ``limit`` most recent snapshots across all patients."""
        ...

    async def get_patient_history(
        self, patient_id: str, *, window_hours: float = 24, limit: int = 100
    ) -> FetchResult:
        """Snapshots for one patient within the window, oldest first."""
        ...

    @property
    def data_source(self) -> str:
        """Label for the active data source: 'predictor', 'mock' or 'fallback'."""
        ...
