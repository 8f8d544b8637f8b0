# tests/test_app.py
from retail_ops.app import bootstrap, main
from retail_ops.config import ENV_DATA_DIR, get_settings


def test_settings_prefer_argument_then_env(tmp_path, monkeypatch):
    monkeypatch.setenv(ENV_DATA_DIR, str(tmp_path / "env"))
    assert get_settings().data_dir == (tmp_path / "env").resolve()
    explicit = get_settings(str(tmp_path / "arg"))
    assert explicit.data_dir == (tmp_path / "arg").resolve()
    assert explicit.db_path.name == "retail_ops.db"
    assert explicit.data_dir.is_dir()


def test_state_survives_restart(qtbot, tmp_path):
    rt = bootstrap(str(tmp_path))
    rt.controller.store.add_customer("Mika")
    rt.close()  # flushes the pending autosave

    again = bootstrap(str(tmp_path))
    try:
        names = [c.name for c in again.controller.store.state.customers]
        assert "Mika" in names
    finally:
        again.close()


def test_main_prints_status(qtbot, tmp_path, monkeypatch, capsys):
    monkeypatch.setenv(ENV_DATA_DIR, str(tmp_path))
    assert main([]) == 0
    out = capsys.readouterr().out
    assert out.startswith("shift=NOT_STARTED cash=$0.00")
