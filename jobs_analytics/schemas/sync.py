from datetime import datetime
from typing import Literal

from pydantic import BaseModel

SyncStatus = Literal["never_synced", "syncing", "completed", "failed"]


class SyncStatusOut(BaseModel):
    status: SyncStatus
    last_sync_at: datetime | None = None
    total_jobs: int | None = None
    sync_duration_ms: int | None = None
    last_error: str | None = None
    has_data: bool
    needs_sync: bool


class SyncTriggerRequest(BaseModel):
    force: bool = False


class SyncTriggerOut(BaseModel):
    accepted: bool
    status: SyncStatus
