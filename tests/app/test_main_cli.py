from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from enforcesync.domain.model import Agency, RecordKind
from enforcesync.domain.pipeline import IngestionSummary
from enforcesync.ui import cli
from tests.helpers.records import hse_case_record

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from pathlib import Path


def _write_records(path: Path, *lines: str) -> Path:
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def _fake_ingest(
    captured: dict[str, object], summary: IngestionSummary | None = None
) -> Callable[..., IngestionSummary]:
    def fake_ingest(
        agency: Agency,
        kind: RecordKind,
        records: Iterable[dict[str, object]],
        *,
        use_company_register: bool,
    ) -> IngestionSummary:
        consumed = list(records)
        captured.update(
            agency=agency,
            kind=kind,
            records=consumed,
            use_company_register=use_company_register,
        )
        return summary or IngestionSummary(created=len(consumed))

    return fake_ingest


def test_main_cli_ingests_json_lines(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}
    monkeypatch.setattr(cli, "ingest_records", _fake_ingest(captured))
    source = _write_records(
        tmp_path / "cases.jsonl",
        json.dumps(hse_case_record()),
        "",
        json.dumps(hse_case_record(regulator_id="4759899")),
    )

    cli.main(["ingest", "--agency", "hse", "--file", str(source)])

    assert captured["agency"] is Agency.HSE
    assert captured["kind"] is RecordKind.CASE
    records = captured["records"]
    assert isinstance(records, list)
    assert [record["regulator_id"] for record in records] == ["4759832", "4759899"]
    assert captured["use_company_register"] is True


def test_main_cli_flags(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}
    monkeypatch.setattr(cli, "ingest_records", _fake_ingest(captured))
    source = _write_records(tmp_path / "notices.jsonl", json.dumps({"regulator_id": "1"}))

    cli.main(
        [
            "--verbose",
            "ingest",
            "--agency",
            "hse",
            "--kind",
            "notice",
            "--file",
            str(source),
            "--no-company-register",
        ]
    )

    assert captured["kind"] is RecordKind.NOTICE
    assert captured["use_company_register"] is False


def test_main_cli_missing_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "ingest_records", _fake_ingest({}))

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["ingest", "--agency", "ea", "--file", str(tmp_path / "missing.jsonl")])

    assert excinfo.value.code == 2


def test_main_cli_unknown_agency() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["ingest", "--agency", "fsa", "--file", "cases.jsonl"])

    assert excinfo.value.code == 2


@pytest.mark.parametrize("line", ["{not json", "[1, 2]"])
def test_main_cli_invalid_input(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, line: str
) -> None:
    monkeypatch.setattr(cli, "ingest_records", _fake_ingest({}))
    source = _write_records(tmp_path / "bad.jsonl", line)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["ingest", "--agency", "hse", "--file", str(source)])

    assert excinfo.value.code == 2


def test_main_cli_aborted_run_exits_nonzero(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(
        cli, "ingest_records", _fake_ingest({}, IngestionSummary(errors=6, aborted=True))
    )
    source = _write_records(tmp_path / "cases.jsonl", json.dumps(hse_case_record()))

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["ingest", "--agency", "hse", "--file", str(source)])

    assert excinfo.value.code == 1


def test_main_cli_unexpected_failure(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_ingest(*_: object, **__: object) -> IngestionSummary:
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(cli, "ingest_records", failing_ingest)
    source = _write_records(tmp_path / "cases.jsonl", json.dumps(hse_case_record()))

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["ingest", "--agency", "hse", "--file", str(source)])

    assert excinfo.value.code == 1


def test_main_cli_prints_policies(capsys: pytest.CaptureFixture[str]) -> None:
    cli.main(["policies"])

    output = capsys.readouterr().out.splitlines()
    assert [line.split(":")[0] for line in output] == [
        "api_operations",
        "database_operations",
        "critical_operations",
        "default",
    ]
    assert "attempts=10" in output[2]
    assert "backoff=fibonacci" in output[2]
