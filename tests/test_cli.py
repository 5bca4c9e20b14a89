import datetime as dt
import logging
import sqlite3
from types import SimpleNamespace

import pytest
from openpyxl import Workbook

from migel import cli, sources
from migel.config import MatchingSettings

HEADER = "GTIN,Name,A,B,C,TradeItemDescription_DE,TradeItemDescription_FR,TradeItemDescription_IT,BrandName"
ROWS = [
    "7612345000001,Katheter,,,,Verweilkatheter 16Ch steril,Sonde à demeure,Catetere,Bard",
    "7612345000002,Handschuh,,,,Einweghandschuhe Latex,Gants,Guanti,Acme",
]


@pytest.fixture(autouse=True)
def _isolate(monkeypatch):
    monkeypatch.setattr(cli, "load_dotenv", lambda: None)
    for name in ("MIGEL_CSV_URL", "MIGEL_XLSX_URL", "MIGEL_WORKERS", "MIGEL_DEPLOY_TARGET", "MIGEL_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def workspace(tmp_path):
    csv_path = tmp_path / "firstbase.csv"
    csv_path.write_text("\n".join([HEADER, *ROWS]) + "\n", encoding="utf-8")

    wb = Workbook()
    ws = wb.active
    ws.title = "Deutsch"
    ws.append(["Positions-Nr.", "Bezeichnung", "Limitation"])
    ws.append(["03", "APPLIKATIONSHILFEN", None])
    ws.append(["03.01.01.00.1", "Verweilkatheter", "nur bei Dauerkatheterisierung"])
    catalog = tmp_path / "migel.xlsx"
    wb.save(catalog)

    config = tmp_path / "config.ini"
    config.write_text(
        f"[SOURCES]\ncsv_file = {csv_path}\n[DEPLOY]\ntarget =\n[LOGGING]\nlevel = WARNING\n",
        encoding="utf-8",
    )
    return SimpleNamespace(root=tmp_path, csv=csv_path, catalog=catalog, config=config)


def test_migel_run_writes_matched_rows(workspace, capsys):
    output = workspace.root / "out.db"
    code = cli.main(
        [
            "--migel",
            "--local-csv",
            "--catalog",
            str(workspace.catalog),
            "--output",
            str(output),
            "--workers",
            "1",
            "--config",
            str(workspace.config),
        ]
    )
    assert code == 0
    with sqlite3.connect(output) as conn:
        columns = [row[1] for row in conn.execute("PRAGMA table_info(data)")]
        rows = conn.execute("SELECT GTIN, migel_code, migel_bezeichnung, migel_limitation FROM data").fetchall()
    assert columns[0] == "GTIN"
    assert columns[-3:] == ["migel_code", "migel_bezeichnung", "migel_limitation"]
    assert rows == [("7612345000001", "03.01.01.00.1", "Verweilkatheter", "nur bei Dauerkatheterisierung")]
    assert "MiGeL matches: 1" in capsys.readouterr().out


def test_plain_run_copies_all_rows(workspace, capsys):
    output = workspace.root / "firstbase.db"
    assert cli.main(["--local-csv", "--output", str(output), "--config", str(workspace.config)]) == 0
    with sqlite3.connect(output) as conn:
        assert conn.execute("SELECT COUNT(*) FROM data").fetchone() == (2,)
    assert "Total CSV lines processed: 3" in capsys.readouterr().out


def test_missing_csv_returns_error(workspace):
    workspace.csv.unlink()
    output = workspace.root / "firstbase.db"
    assert cli.main(["--local-csv", "--output", str(output), "--config", str(workspace.config)]) == 1
    assert not output.exists()


def test_deploy_without_target_fails(workspace):
    output = workspace.root / "firstbase.db"
    args = ["--local-csv", "--deploy", "--output", str(output), "--config", str(workspace.config)]
    assert cli.main(args) == 1
    assert output.exists()


def test_deploy_uses_configured_target(workspace, monkeypatch):
    monkeypatch.setenv("MIGEL_DEPLOY_TARGET", "user@host:/srv/")
    seen = []
    monkeypatch.setattr(
        sources.subprocess, "run", lambda cmd, check=False: seen.append(cmd) or SimpleNamespace(returncode=0)
    )
    output = workspace.root / "firstbase.db"
    args = ["--local-csv", "--deploy", "--output", str(output), "--config", str(workspace.config)]
    assert cli.main(args) == 0
    assert seen == [["scp", str(output), "user@host:/srv/"]]


def test_migel_db_name():
    assert cli.migel_db_name(True) == "firstbase_migel.db"
    assert cli.migel_db_name(False, dt.date(2026, 1, 2)) == "firstbase_migel_02.01.2026.db"


def test_build_matcher_applies_settings(catalog):
    matcher = cli.build_matcher(catalog, MatchingSettings())
    assert matcher.match(cli.products_from_rows([["1", "", "", "", "", "Verweilkatheter"]])[0]).code == "01.01.01"


def test_parser_flags():
    args = cli.build_parser().parse_args(["--migel", "--deploy", "--workers", "4", "-v"])
    assert args.migel and args.deploy and args.verbose
    assert args.workers == 4
    assert not args.local_csv
