# src/seedling/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events in a single bootstrap invocation
    host: str         # target being bootstrapped

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(host: str, run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "run_id": run_id or str(uuid.uuid4()),
        "host": host,
    }


# ---------------------------------------------------------------------
# Bootstrap lifecycle
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BootstrapStarted(BaseEvent):
    protocol: str

@dataclass(frozen=True)
class ConnectionOpened(BaseEvent):
    protocol: str
    user: Optional[str]

@dataclass(frozen=True)
class AuthenticationRetried(BaseEvent):
    user: Optional[str]

@dataclass(frozen=True)
class ScriptUploaded(BaseEvent):
    path: str
    size: int

@dataclass(frozen=True)
class BootstrapSucceeded(BaseEvent):
    duration_ms: int

@dataclass(frozen=True)
class BootstrapFailed(BaseEvent):
    error: str
    exit_status: Optional[int] = None
