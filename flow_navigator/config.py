"""Environment configuration for Flow Navigator."""
from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class Settings(BaseModel):
    log_level: str = "INFO"
    enable_metrics: bool = False
    metrics_port: int = 8001
    # Upper bound on entries kept per depth history; guards against routing cycles.
    max_history: int = Field(default=100, ge=1)
    predicate_timeout_ms: int = Field(default=500, ge=1)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            enable_metrics=os.getenv("ENABLE_METRICS", "false").lower() == "true",
            metrics_port=int(os.getenv("METRICS_PORT", "8001")),
            max_history=int(os.getenv("FLOW_MAX_HISTORY", "100")),
            predicate_timeout_ms=int(os.getenv("FLOW_PREDICATE_TIMEOUT_MS", "500")),
        )


settings = Settings.from_env()
