"""Tests for the dinein-dashboard command."""

import json
from pathlib import Path

import pandas as pd
import pytest

from dinein_core import cli
from dinein_core.raw.blob_store import StoredFile, UploadResult


@pytest.fixture
def export_csv(tmp_path: Path, raw_export: pd.DataFrame) -> Path:
    path = tmp_path / "orders.csv"
    raw_export.to_csv(path, index=False)
    return path


def test_writes_dashboard_json(export_csv: Path, tmp_path: Path) -> None:
    out = tmp_path / "out" / "dashboard.json"
    code = cli.main([str(export_csv), "--day-type", "weekend", "--hide-ayce", "-o", str(out), "--quiet"])
    assert code == 0

    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["order_count"] == 1
    assert payload["filters"]["day_type"] == "weekend"
    assert payload["filters"]["show_ayce"] is False


def test_kitchen_and_dates(export_csv: Path, tmp_path: Path) -> None:
    out = tmp_path / "dashboard.json"
    code = cli.main(
        [
            str(export_csv),
            "--kitchen",
            "JBR",
            "--start",
            "2024-01-06",
            "--end",
            "2024-01-08",
            "-o",
            str(out),
        ]
    )
    assert code == 0
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert [row["kitchen"] for row in payload["kitchen_aov"]] == ["JBR"]
    assert payload["summary"]["waiter"]["bill"] == 45.0


def test_stdout(export_csv: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main([str(export_csv), "--quiet"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["shape"] == "item"


def test_missing_file_returns_2(tmp_path: Path) -> None:
    assert cli.main([str(tmp_path / "missing.csv"), "--quiet"]) == 2


def test_invalid_dates_return_2(export_csv: Path) -> None:
    assert cli.main([str(export_csv), "--start", "2024-01-09", "--end", "2024-01-01", "--quiet"]) == 2


def test_no_input_returns_2() -> None:
    assert cli.main(["--quiet"]) == 2


def test_list_files(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    class FakeStore:
        def list_files(self) -> list[StoredFile]:
            return [StoredFile("2024-01-06_orders.csv", "https://blob.example.com/x", 10, "2024-01-06T10:00:00Z")]

    monkeypatch.setattr(cli.BlobStore, "from_env", classmethod(lambda cls: FakeStore()))
    assert cli.main(["--list-files", "--quiet"]) == 0
    assert "2024-01-06_orders.csv" in capsys.readouterr().out


def test_upload_failure_returns_2(export_csv: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    class FakeStore:
        def upload(self, filename: str, data: bytes) -> UploadResult:
            return UploadResult(success=False, filename=filename, error="HTTP 403")

    monkeypatch.setattr(cli.BlobStore, "from_env", classmethod(lambda cls: FakeStore()))
    assert cli.main(["--upload", str(export_csv), "--quiet"]) == 2


def test_blob_store_not_configured(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DINEIN_BLOB_URL", raising=False)
    assert cli.main(["--list-files", "--quiet"]) == 2
