import pytest

from photo_tidy.core import PhotoTidyApp
from photo_tidy.exceptions import ConfigurationError
from photo_tidy.main import main
from photo_tidy.models import MoveRequest
from conftest import StubEnricher

@pytest.fixture
def workspace(tmp_path):
    src = tmp_path / "inbox"
    src.mkdir()
    (src / "a.jpg").write_bytes(b"twin")
    (src / "b.jpg").write_bytes(b"twin")
    (src / "c.png").write_bytes(b"solo")
    (src / "skip.txt").write_text("ignored")

    cfg = tmp_path / "settings.yaml"
    cfg.write_text(f"""
database:
  base_folder: state
scan:
  source_folders: ["{src.as_posix()}"]
  include_extensions: [jpg, png]
target:
  base_folder: "{(tmp_path / 'library').as_posix()}"
  pattern: "{{Year}}/{{OriginalName}}"
""", encoding="utf-8")
    return tmp_path, cfg

def test_operations_require_loaded_settings():
    app = PhotoTidyApp()
    with pytest.raises(ConfigurationError):
        app.run_scan()

def test_scan_then_tidy(workspace):
    root, cfg = workspace
    with PhotoTidyApp(cfg, enricher=StubEnricher()) as app:
        summary = app.run_scan()
        assert summary.files_persisted == 3
        assert summary.files_skipped == 1

        [group] = app.list_duplicate_groups()
        dup = group.files[1]
        result = app.execute_tidy([MoveRequest(dup.id)])

        assert result.moved == 1
        assert app.list_pending_actions() == []
        year = dup.mod_time.strftime("%Y")
        assert (root / "library" / year / "b.jpg").exists()

    assert (root / "state" / "media.db").exists()

def test_reload_swaps_store(workspace, tmp_path):
    root, cfg = workspace
    app = PhotoTidyApp(cfg, enricher=StubEnricher())
    app.reload()
    app.run_scan()
    first_db = app.db

    cfg.write_text(cfg.read_text().replace("base_folder: state", "base_folder: state2"), encoding="utf-8")
    app.reload()

    assert app.db is not first_db
    assert app.settings.database_path == root / "state2" / "media.db"
    assert app.list_duplicate_groups() == []
    app.close()

def test_cli_round_trip(workspace, capsys):
    root, cfg = workspace
    assert main(["-c", str(cfg), "scan"]) == 0
    assert main(["-c", str(cfg), "duplicates", "--csv", str(root / "d.csv")]) == 0
    assert (root / "d.csv").exists()

    assert main(["-c", str(cfg), "tidy", "--duplicates", "--dry-run"]) == 0
    assert (root / "inbox" / "b.jpg").exists()

    assert main(["-c", str(cfg), "tidy", "--duplicates"]) == 0
    assert not (root / "inbox" / "b.jpg").exists()

    capsys.readouterr()
    assert main(["-c", str(cfg), "actions", "--status", "completed"]) == 0
    assert "[completed]" in capsys.readouterr().out
    assert main(["-c", str(cfg), "recover"]) == 0

def test_cli_reports_configuration_errors(tmp_path):
    assert main(["-c", str(tmp_path / "missing.yaml"), "scan"]) == 1

def test_empty_extension_list_scans_every_file(tmp_path):
    src = tmp_path / "inbox"
    src.mkdir()
    (src / "a.xyz").write_bytes(b"odd")
    (src / "b.jpg").write_bytes(b"photo")
    cfg = tmp_path / "settings.yaml"
    cfg.write_text(f"""
scan:
  source_folders: ["{src.as_posix()}"]
  include_extensions: []
""", encoding="utf-8")

    with PhotoTidyApp(cfg, enricher=StubEnricher()) as app:
        summary = app.run_scan()

    assert summary.files_persisted == 2
    assert summary.files_skipped == 0
