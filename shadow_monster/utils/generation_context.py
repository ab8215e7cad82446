"""Run context: structured logging and per-stage records for monster generation."""

from __future__ import annotations

import contextlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
import time
import uuid
from typing import Any, Dict, Iterator, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from shadow_monster.config import MonsterConfig


SCHEMA_VERSION = "monster_manifest_v1"

STAGE_OK = "ok"
STAGE_FAILED = "failed"


@dataclass
class StageRecord:
    """One pipeline stage: how long it ran, how it ended and what it produced.

    ``outputs`` holds the stage's JSON-safe counts (contours found, faces
    built, ...), filled in by the stage body through ``time_block``.
    """

    stage: str
    elapsed_ms: float
    started_utc: str
    status: str = STAGE_OK
    outputs: Dict[str, object] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        """Return a JSON-serializable dict."""
        return {
            "stage": self.stage,
            "status": self.status,
            "elapsed_ms": self.elapsed_ms,
            "started_utc": self.started_utc,
            "outputs": dict(self.outputs),
        }


@dataclass
class GenerationContext:
    """Per-request context carrying the run id, log lines and stage records."""

    run_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    request_label: str = "monster"
    echo: bool = True
    created_utc: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    schema_version: str = SCHEMA_VERSION
    stages: List[StageRecord] = field(default_factory=list)
    logs: List[Dict[str, object]] = field(default_factory=list)
    config: Optional["MonsterConfig"] = None

    def log(self, level: str, message: str, **fields: Any) -> str:
        """Emit a structured log line tagged with the current run_id."""
        ordered_fields = " ".join(f"{key}={fields[key]}" for key in sorted(fields))
        line = f"[monster] run_id={self.run_id} level={level} msg={message}"
        if ordered_fields:
            line = f"{line} {ordered_fields}"
        if self.echo:
            print(line)
        self.logs.append({"level": level, "message": message, **fields})
        return line

    @contextlib.contextmanager
    def time_block(self, stage: str) -> Iterator[Dict[str, object]]:
        """
        Record a stage's elapsed time, end status and outputs.

        Yields the dict the stage fills with what it produced. The record is
        appended even when the body raises; it is then marked failed.
        """
        start = time.perf_counter()
        started_utc = datetime.now(timezone.utc).isoformat()
        record = StageRecord(stage=stage, elapsed_ms=0.0, started_utc=started_utc)
        try:
            yield record.outputs
        except BaseException:
            record.status = STAGE_FAILED
            raise
        finally:
            record.elapsed_ms = (time.perf_counter() - start) * 1000.0
            self.stages.append(record)

    def stage_names(self) -> List[str]:
        return [stage.stage for stage in self.stages]

    def stage(self, name: str) -> Optional[StageRecord]:
        """Most recent record for a stage, or None if it never ran."""
        for record in reversed(self.stages):
            if record.stage == name:
                return record
        return None

    def stage_outputs(self) -> Dict[str, Dict[str, object]]:
        """Outputs keyed by stage name, in run order."""
        return {record.stage: dict(record.outputs) for record in self.stages}

    def total_elapsed_ms(self) -> float:
        return float(sum(record.elapsed_ms for record in self.stages))

    def log_counts(self) -> Dict[str, int]:
        """Number of log lines per level."""
        counts: Dict[str, int] = {}
        for entry in self.logs:
            level = str(entry["level"])
            counts[level] = counts.get(level, 0) + 1
        return counts

    def to_dict(self) -> Dict[str, object]:
        """Return a JSON-serializable dict describing this context."""
        data: Dict[str, object] = {
            "run_id": self.run_id,
            "request_label": self.request_label,
            "created_utc": self.created_utc,
            "schema_version": self.schema_version,
            "log_counts": self.log_counts(),
        }
        if self.config is not None:
            data["config"] = self.config.to_dict()
        try:
            json.dumps(data)
        except TypeError as exc:
            raise ValueError(
                "GenerationContext contains non-serializable values"
            ) from exc
        return data
