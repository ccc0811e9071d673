"""Tests for execution-result models and their catalog encoding."""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from buildrepro.models.execution import (
    ExecutionRecord,
    ExecutionResult,
    Exited,
    Signalled,
    TimedOut,
    UploadedFile,
    describe_result,
    is_success,
    result_from_columns,
    result_to_columns,
)

_ADAPTER = TypeAdapter(ExecutionResult)


class TestExecutionResult:
    @pytest.mark.parametrize(
        ("result", "success"),
        [
            (Exited(code=0), True),
            (Exited(code=1), False),
            (Signalled(code=9), False),
            (TimedOut(), False),
        ],
    )
    def test_only_exit_zero_succeeds(self, result, success):
        assert is_success(result) is success

    def test_discriminated_parsing(self):
        assert _ADAPTER.validate_python({"kind": "signalled", "code": 15}) == Signalled(code=15)
        assert _ADAPTER.validate_python({"kind": "timed_out"}) == TimedOut()
        with pytest.raises(ValidationError):
            _ADAPTER.validate_python({"kind": "crashed"})

    @pytest.mark.parametrize("result", [Exited(code=3), Signalled(code=11), TimedOut()])
    def test_columns(self, result):
        assert result_from_columns(*result_to_columns(result)) == result

    def test_unknown_column_kind(self):
        with pytest.raises(ValueError):
            result_from_columns("exploded", 1)

    def test_describe(self):
        assert describe_result(Exited(code=0)) == "exited 0"
        assert describe_result(Signalled(code=9)) == "signalled 9"
        assert describe_result(TimedOut()) == "timed out"

    def test_non_result_rejected(self):
        with pytest.raises(TypeError):
            is_success("exited")  # type: ignore[arg-type]


class TestExecutionRecord:
    def test_naive_timestamps_become_utc(self, make_record):
        from datetime import datetime

        record = make_record(start=datetime(2024, 1, 1, 8), finish=datetime(2024, 1, 1, 9))
        assert record.start.tzinfo is not None
        assert record.start.utcoffset().total_seconds() == 0

    def test_uuid_canonicalised(self, make_record):
        record = make_record(uuid="0F4D2A576A4E4A3B9D510A6B2F8E9C11")
        assert record.uuid == "0f4d2a57-6a4e-4a3b-9d51-0a6b2f8e9c11"

    def test_bad_uuid(self, make_record):
        with pytest.raises(ValidationError):
            make_record(uuid="not-a-uuid")

    def test_generated_uuid(self):
        from datetime import datetime, timezone

        now = datetime.now(timezone.utc)
        a = ExecutionRecord(job_name="j", platform="p", start=now, finish=now, result=TimedOut())
        b = ExecutionRecord(job_name="j", platform="p", start=now, finish=now, result=TimedOut())
        assert a.uuid != b.uuid

    def test_duplicate_filepaths_rejected(self, make_record):
        files = [
            UploadedFile(filepath="bin/main", data=b"one"),
            UploadedFile(filepath="bin/main", data=b"two"),
        ]
        with pytest.raises(ValidationError, match="duplicate file path"):
            make_record(files=files)
