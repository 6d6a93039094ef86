"""Relay audit trail: append-only JSON Lines with rotation and hash chain."""

from __future__ import annotations

import fcntl
import hashlib
import json
import os
from dataclasses import dataclass
from pathlib import Path

from src.models import AuditEvent

_TAIL_CHUNK = 4096


@dataclass
class ChainValidationResult:
    valid: bool
    broken_at_line: int | None = None


def _line_hash(line: str) -> str:
    return hashlib.sha256(line.encode()).hexdigest()


def validate_audit_chain(log_path: Path) -> ChainValidationResult:
    """Check that each entry's ``prev_hash`` matches the line before it."""
    lines = [line for line in log_path.read_text().splitlines() if line]
    prev: str | None = None
    for number, line in enumerate(lines, start=1):
        entry = json.loads(line)
        expected = _line_hash(prev) if prev is not None else None
        if entry.get("prev_hash") != expected:
            return ChainValidationResult(valid=False, broken_at_line=number)
        prev = line
    return ChainValidationResult(valid=True)


class AuditLogger:
    """Records one event per relay invocation.

    Callers are responsible for keeping captions, images and credentials out
    of ``AuditEvent.details``.
    """

    def __init__(
        self,
        log_path: str,
        max_bytes: int = 10_485_760,
        backup_count: int = 5,
    ) -> None:
        self.log_path = Path(log_path)
        self._max_bytes = max_bytes
        self._backup_count = backup_count

    @classmethod
    def from_env(cls, log_path: str) -> AuditLogger:
        max_bytes = int(os.environ.get("AUDIT_LOG_MAX_BYTES", "10485760"))
        backup_count = int(os.environ.get("AUDIT_LOG_BACKUP_COUNT", "5"))
        return cls(log_path=log_path, max_bytes=max_bytes, backup_count=backup_count)

    def _read_last_line(self) -> str | None:
        """Return the file's last non-empty line, reading backwards from the end."""
        if not self.log_path.exists():
            return None
        with open(self.log_path, "rb") as f:
            end = f.seek(0, os.SEEK_END)
            pos = end
            tail = b""
            while pos > 0:
                step = min(_TAIL_CHUNK, pos)
                pos -= step
                f.seek(pos)
                tail = f.read(step) + tail
                if tail.rstrip(b"\n").count(b"\n") >= 1:
                    break
        last = tail.rstrip(b"\n").rsplit(b"\n", 1)[-1]
        return last.decode() if last else None

    def _backup(self, index: int) -> Path:
        return self.log_path.with_name(f"{self.log_path.name}.{index}")

    def _maybe_rotate(self) -> None:
        if not self.log_path.exists() or self.log_path.stat().st_size < self._max_bytes:
            return
        self._backup(self._backup_count).unlink(missing_ok=True)
        for i in range(self._backup_count - 1, 0, -1):
            if self._backup(i).exists():
                self._backup(i).rename(self._backup(i + 1))
        self.log_path.rename(self._backup(1))

    def log(self, event: AuditEvent) -> None:
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        data = json.loads(event.model_dump_json())

        lock_file = self.log_path.with_name(f".{self.log_path.name}.lock")
        with open(lock_file, "w") as lf:
            fcntl.flock(lf, fcntl.LOCK_EX)
            try:
                self._maybe_rotate()
                # Chain to the file as it is now; other processes append too.
                prev = self._read_last_line()
                data["prev_hash"] = _line_hash(prev) if prev is not None else None
                line = json.dumps(data, separators=(",", ":"))
                with open(self.log_path, "a") as f:
                    f.write(line + "\n")
            finally:
                fcntl.flock(lf, fcntl.LOCK_UN)
