"""Sync lifecycle models -- refresh state as seen by the presentation layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from core.models.market import AssetSymbol


class SyncStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class SyncState(BaseModel):
    """Read model of the refresh lifecycle.

    `has_data` is True whenever a snapshot set has ever been published,
    including while `failed` (last known good data stays readable).
    """

    status: SyncStatus = SyncStatus.IDLE
    last_error: str | None = None
    failed_assets: list[AssetSymbol] = Field(default_factory=list)
    last_attempt_at: datetime | None = None
    last_success_at: datetime | None = None
    has_data: bool = False

    @property
    def is_loading(self) -> bool:
        return self.status == SyncStatus.LOADING
