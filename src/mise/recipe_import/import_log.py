"""
Mise - Import Log.

One record per import attempt, for analytics on which tiers win and what
the AI fallback costs. Writes are best-effort: a failing sink is logged and
ignored, never surfaced to the caller.

Sinks:
- JSONL file per day (tail -f friendly), always on unless disabled
- Supabase table insert, when SUPABASE_URL and a service key are configured

Log format (JSONL):
    {"source_url": "...", "source_type": "WEB_URL", "extraction_method": "json_ld", ...}
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from supabase import Client, create_client

from mise.config import settings

from .models import ExtractionResult, SourceDetectionResult, UrlSource

logger = logging.getLogger(__name__)

# Recipe source values stored with each record
SOURCE_TYPE_BY_URL_SOURCE = {
    UrlSource.INSTAGRAM: "INSTAGRAM_URL",
    UrlSource.FACEBOOK: "FACEBOOK_URL",
    UrlSource.YOUTUBE: "YOUTUBE",
    UrlSource.TIKTOK: "OTHER",
    UrlSource.RECIPE_SITE: "WEB_URL",
    UrlSource.GENERIC_WEBSITE: "WEB_URL",
    UrlSource.PDF: "PDF",
}


def map_source_type(source: UrlSource) -> str:
    return SOURCE_TYPE_BY_URL_SOURCE.get(source, "OTHER")


@dataclass
class ImportLogRecord:
    """One import attempt."""

    source_url: str
    source_type: str
    extraction_method: str
    confidence: float
    success: bool
    ai_tokens_used: int | None = None
    processing_time_ms: int | None = None
    error_message: str | None = None
    user_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @classmethod
    def from_result(
        cls,
        url: str,
        detection: SourceDetectionResult,
        result: ExtractionResult,
        user_id: str | None = None,
        attempts: list[dict[str, Any]] | None = None,
    ) -> "ImportLogRecord":
        return cls(
            source_url=url,
            source_type=map_source_type(detection.source),
            extraction_method=result.method.value,
            confidence=result.confidence,
            success=result.success,
            ai_tokens_used=result.ai_tokens_used,
            processing_time_ms=result.processing_time_ms,
            error_message=result.error,
            user_id=user_id,
            metadata={
                "site_name": detection.site_name,
                "is_known_recipe_site": detection.is_known_recipe_site,
                "attempts": attempts or [],
            },
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ImportLogSink(Protocol):
    def write(self, record: ImportLogRecord) -> None: ...


# =============================================================================
# Sinks
# =============================================================================


class JsonlImportLogSink:
    """Append records to import_log_dir/imports_YYYYMMDD.jsonl."""

    def __init__(self, log_dir: str | Path | None = None):
        self.log_dir = Path(log_dir or settings.import_log_dir)

    def _path(self) -> Path:
        return self.log_dir / f"imports_{datetime.now().strftime('%Y%m%d')}.jsonl"

    def write(self, record: ImportLogRecord) -> None:
        self.log_dir.mkdir(parents=True, exist_ok=True)
        with open(self._path(), "a", encoding="utf-8") as f:
            f.write(json.dumps(record.to_dict(), default=str) + "\n")


class SupabaseImportLogSink:
    """Insert records into the import log table."""

    def __init__(self, client: Client | None = None, table: str | None = None):
        self._client = client
        self.table = table or settings.import_log_table

    def _get_client(self) -> Client:
        if self._client is None:
            self._client = create_client(settings.supabase_url, settings.supabase_service_role_key)
        return self._client

    def write(self, record: ImportLogRecord) -> None:
        self._get_client().table(self.table).insert(record.to_dict()).execute()


# =============================================================================
# Logger
# =============================================================================


class ImportLogger:
    """Fans each record out to every configured sink."""

    def __init__(self, sinks: list[ImportLogSink] | None = None, enabled: bool | None = None):
        self.enabled = settings.mise_log_imports if enabled is None else enabled
        if sinks is None:
            sinks = [JsonlImportLogSink()]
            if settings.supabase_enabled:
                sinks.append(SupabaseImportLogSink())
        self.sinks = sinks

    def log(self, record: ImportLogRecord) -> None:
        """Write to every sink. Never raises."""
        if not self.enabled:
            return

        for sink in self.sinks:
            try:
                sink.write(record)
            except Exception as e:
                logger.warning(f"Failed to log import attempt to {type(sink).__name__}: {e}")
