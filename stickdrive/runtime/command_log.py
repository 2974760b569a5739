from __future__ import annotations

import json
import os
import time
from collections import deque
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Deque, List, Optional, TextIO

from stickdrive.core.config import LogTuning
from stickdrive.core.types import DispatchOutcome, DispatchStatus

"""
Operator command log.
Newest-first, bounded. Drive-path entries are rate limited so a drag does not
flood the panel; power / rotation entries always land.
Optionally mirrored as JSONL (one line per entry) for later inspection.
"""


@dataclass(frozen=True)
class LogEntry:
    id: int
    timestamp: str
    message: str


def default_log_path() -> Path:
    outdir = Path.home() / ".cache" / "stickdrive" / "command_logs"
    outdir.mkdir(parents=True, exist_ok=True)
    ts = time.strftime("%Y%m%d_%H%M%S")
    return outdir / f"commands_{ts}.jsonl"


def describe(outcome: DispatchOutcome, label: str | None = None) -> str:
    head = label or f"request: /robot/{outcome.symbol}/{outcome.speed}"
    took = f"{int(round(outcome.elapsed_ms))}ms"
    if outcome.status == DispatchStatus.SENT:
        return f"{head} - response: {outcome.code or 'ok'} - took: {took}"
    return f"{head} - failed - took: {took}"


class CommandLog:
    def __init__(self, tuning: LogTuning = LogTuning(), mirror: TextIO | None = None, echo: bool = True) -> None:
        self.tuning = tuning
        self._entries: Deque[LogEntry] = deque(maxlen=tuning.max_entries)
        self._last_drive_ms: int | None = None
        self._next_id = 1
        self._mirror = mirror
        self.echo = echo

    @classmethod
    def from_env(cls, tuning: LogTuning = LogTuning()) -> "CommandLog":
        # STICKDRIVE_LOG_PATH="" disables the JSONL mirror
        path = os.environ.get("STICKDRIVE_LOG_PATH")
        if path == "":
            return cls(tuning)
        p = Path(path).expanduser() if path else default_log_path()
        p.parent.mkdir(parents=True, exist_ok=True)
        print(f"[CommandLog] writing {p}")
        return cls(tuning, mirror=open(p, "a", buffering=1))

    @property
    def entries(self) -> List[LogEntry]:
        return list(self._entries)

    def add(self, message: str, t_ms: int | None = None) -> LogEntry:
        entry = LogEntry(id=self._next_id, timestamp=time.strftime("%H:%M:%S"), message=message)
        self._next_id += 1
        self._entries.appendleft(entry)
        if self.echo:
            print(f"[{entry.timestamp}] {message}")
        if self._mirror is not None:
            rec = asdict(entry)
            rec["t_ms"] = t_ms
            self._mirror.write(json.dumps(rec) + "\n")
        return entry

    def record_drive(self, outcome: DispatchOutcome, t_ms: int) -> Optional[LogEntry]:
        # skipped / gated are not failures and never reach the panel
        if outcome.status in (DispatchStatus.SKIPPED, DispatchStatus.GATED):
            return None
        if self._last_drive_ms is not None and (t_ms - self._last_drive_ms) < self.tuning.drive_interval_ms:
            return None
        self._last_drive_ms = t_ms
        return self.add(describe(outcome), t_ms=t_ms)

    def record(self, outcome: DispatchOutcome, label: str, t_ms: int | None = None) -> Optional[LogEntry]:
        if outcome.status == DispatchStatus.GATED:
            return None
        return self.add(describe(outcome, label), t_ms=t_ms)

    def close(self) -> None:
        if self._mirror is not None:
            self._mirror.close()
            self._mirror = None
