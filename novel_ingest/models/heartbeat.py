"""Worker heartbeat model for monitoring consumer status via Redis."""

from datetime import datetime

from pydantic import BaseModel, Field


class WorkerHeartbeat(BaseModel):
    """Worker status stored in Redis as worker:heartbeat:{name}.

    Written by the consume loop every 10s. Expires after 30s; if a worker
    stops heartbeating, it's considered offline.
    """

    name: str
    topic: str
    group_id: str
    status: str = "idle"  # idle | busy
    last_partition: int | None = None
    last_offset: int | None = None
    messages_processed: int = 0
    messages_failed: int = 0
    started_at: datetime = Field(default_factory=datetime.now)
    last_heartbeat: datetime = Field(default_factory=datetime.now)
