from __future__ import annotations

from typing import List, Optional
from pydantic import BaseModel, Field

from packages.core.monitor.types import DEFAULT_CANDIDATE_PORTS


class AppConfig(BaseModel):
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    host: str = "localhost"
    poll_interval_ms: int = Field(default=3000, gt=0)
    failure_threshold: int = Field(default=3, ge=1)
    candidate_ports: List[int] = Field(default_factory=lambda: list(DEFAULT_CANDIDATE_PORTS))
    notifications_enabled: bool = True
    probe_timeout_ms: int = Field(default=2000, gt=0)
    reload_check_delay_ms: int = Field(default=2000, ge=0)
    ownership_check_enabled: bool = True
    workspace_roots: List[str] = Field(default_factory=list)
    watched_extensions: List[str] = Field(default_factory=lambda: [".vue", ".js", ".ts", ".jsx", ".tsx"])

    def to_monitor_config(self) -> dict:
        return {
            "port": self.port,
            "host": self.host,
            "poll_interval_ms": self.poll_interval_ms,
            "failure_threshold": self.failure_threshold,
            "candidate_ports": tuple(self.candidate_ports),
            "probe_timeout_ms": self.probe_timeout_ms,
            "reload_check_delay_ms": self.reload_check_delay_ms,
            "ownership_check_enabled": self.ownership_check_enabled,
        }
