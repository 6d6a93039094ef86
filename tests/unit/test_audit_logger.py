"""Tests for the relay audit logger."""

from __future__ import annotations

import hashlib
import json
from pathlib import Path

from src.audit.logger import AuditLogger, ChainValidationResult, validate_audit_chain
from src.models import AuditEventType
from tests.conftest import make_audit_event


def test_log_appends_json_line(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    logger = AuditLogger(log_path=str(log_file))
    logger.log(make_audit_event(details={"message_kind": "text"}))

    lines = log_file.read_text().strip().split("\n")
    assert len(lines) == 1
    parsed = json.loads(lines[0])
    assert parsed["event_type"] == "relay_success"
    assert parsed["details"] == {"message_kind": "text"}
    assert parsed["prev_hash"] is None


def test_log_creates_parent_directory(tmp_path: Path) -> None:
    log_file = tmp_path / "subdir" / "audit.jsonl"
    AuditLogger(log_path=str(log_file)).log(make_audit_event())
    assert log_file.exists()


def test_entries_are_hash_chained(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    logger = AuditLogger(log_path=str(log_file))
    for event_type in (AuditEventType.RELAY_SUCCESS, AuditEventType.RELAY_REJECTED):
        logger.log(make_audit_event(event_type=event_type))

    first, second = log_file.read_text().strip().split("\n")
    assert json.loads(second)["prev_hash"] == hashlib.sha256(first.encode()).hexdigest()
    assert validate_audit_chain(log_file).valid is True


def test_chain_continues_after_restart(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    AuditLogger(log_path=str(log_file)).log(make_audit_event())
    AuditLogger(log_path=str(log_file)).log(make_audit_event())
    assert validate_audit_chain(log_file).valid is True


def test_writers_sharing_a_file_keep_one_chain(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    server = AuditLogger(log_path=str(log_file))
    cli = AuditLogger(log_path=str(log_file))
    server.log(make_audit_event(action="relay_0"))
    cli.log(make_audit_event(action="relay_1"))
    server.log(make_audit_event(action="relay_2"))

    assert len(log_file.read_text().strip().split("\n")) == 3
    assert validate_audit_chain(log_file) == ChainValidationResult(valid=True)


def test_rotation_by_another_writer_starts_new_chain(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    rotating = AuditLogger(log_path=str(log_file), max_bytes=1, backup_count=2)
    plain = AuditLogger(log_path=str(log_file))
    plain.log(make_audit_event(action="relay_0"))
    rotating.log(make_audit_event(action="relay_1"))
    plain.log(make_audit_event(action="relay_2"))

    assert (tmp_path / "audit.jsonl.1").exists()
    assert validate_audit_chain(log_file).valid is True
    assert json.loads(log_file.read_text().splitlines()[0])["prev_hash"] is None


def test_last_line_found_across_read_chunks(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    logger = AuditLogger(log_path=str(log_file))
    for i in range(3):
        logger.log(make_audit_event(action="relay", details={"pad": "é" * 3000, "n": i}))
    assert validate_audit_chain(log_file).valid is True


def test_tampering_is_detected(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    logger = AuditLogger(log_path=str(log_file))
    for i in range(3):
        logger.log(make_audit_event(action=f"relay_{i}"))

    lines = log_file.read_text().strip().split("\n")
    entry = json.loads(lines[1])
    entry["result"] = "failure"
    lines[1] = json.dumps(entry, separators=(",", ":"))
    log_file.write_text("\n".join(lines) + "\n")

    result = validate_audit_chain(log_file)
    assert result.valid is False
    assert result.broken_at_line == 3


def test_empty_log_is_valid(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    log_file.write_text("")
    assert validate_audit_chain(log_file).valid is True


def test_rotation_starts_new_chain(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    logger = AuditLogger(log_path=str(log_file), max_bytes=1, backup_count=2)
    for i in range(4):
        logger.log(make_audit_event(action=f"relay_{i}"))

    assert (tmp_path / "audit.jsonl.1").exists()
    assert (tmp_path / "audit.jsonl.2").exists()
    assert not (tmp_path / "audit.jsonl.3").exists()
    assert len(log_file.read_text().strip().split("\n")) == 1
    assert validate_audit_chain(log_file).valid is True


def test_from_env_reads_rotation_settings(tmp_path: Path, monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setenv("AUDIT_LOG_MAX_BYTES", "2048")
    monkeypatch.setenv("AUDIT_LOG_BACKUP_COUNT", "3")
    logger = AuditLogger.from_env(str(tmp_path / "audit.jsonl"))
    assert logger._max_bytes == 2048
    assert logger._backup_count == 3
