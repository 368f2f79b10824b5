from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional


@dataclass
class FlowIngestError(Exception):
    message: str
    details: Optional[dict] = None

    code: ClassVar[str] = "INGEST_ERROR"
    fatal: ClassVar[bool] = False

    def __str__(self) -> str:
        if self.details:
            return f"{self.code}: {self.message} ({self.details})"
        return f"{self.code}: {self.message}"


class MalformedFilename(FlowIngestError):
    code = "MALFORMED_FILENAME"


class ToolInvocationFailure(FlowIngestError):
    code = "TOOL_FAILURE"


class StaleWrite(FlowIngestError):
    code = "STALE_WRITE"


class StoreUnreachable(FlowIngestError):
    code = "STORE_UNREACHABLE"
    fatal = True


class MissingProfileRoot(FlowIngestError):
    code = "MISSING_PROFILE_ROOT"
    fatal = True


class ConfigError(FlowIngestError):
    code = "CONFIG_ERROR"
    fatal = True
