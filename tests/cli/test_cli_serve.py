from unittest.mock import patch

import pytest

from atlas.cli.serve import main as serve_main


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("ATLAS_HOST", "ATLAS_PORT", "ATLAS_DATA_DIR", "ADMIN_PASSWORD"):
        monkeypatch.delenv(name, raising=False)
    with patch("atlas.cli.serve.load_dotenv"), patch("atlas.cli.serve.setup_logging"):
        yield


def test_serve_with_flags(tmp_path):
    argv = ["serve.py", "-p", "9100", "-d", str(tmp_path / "data"), "-m", str(tmp_path)]
    with patch("sys.argv", argv), patch("atlas.cli.serve.uvicorn.run") as run:
        with pytest.raises(SystemExit) as e:
            serve_main()

    assert e.value.code == 0
    run.assert_called_once()
    app = run.call_args.args[0]
    assert run.call_args.kwargs["host"] == "127.0.0.1"
    assert run.call_args.kwargs["port"] == 9100
    assert app.state.config.data_dir == str(tmp_path / "data")
    assert app.state.config.map_dir == str(tmp_path)


def test_environment_defaults(monkeypatch, tmp_path):
    monkeypatch.setenv("ATLAS_HOST", "0.0.0.0")
    monkeypatch.setenv("ATLAS_PORT", "8123")
    monkeypatch.setenv("ADMIN_PASSWORD", "pw")
    with patch("sys.argv", ["serve.py", "-m", str(tmp_path)]), patch(
        "atlas.cli.serve.uvicorn.run"
    ) as run:
        with pytest.raises(SystemExit):
            serve_main()

    assert run.call_args.kwargs["host"] == "0.0.0.0"
    assert run.call_args.kwargs["port"] == 8123
    assert run.call_args.args[0].state.config.admin_password == "pw"


def test_invalid_port_in_environment(monkeypatch, capsys):
    monkeypatch.setenv("ATLAS_PORT", "eighty")
    with patch("sys.argv", ["serve.py"]), patch("atlas.cli.serve.uvicorn.run") as run:
        with pytest.raises(SystemExit) as e:
            serve_main()

    assert e.value.code == 1
    run.assert_not_called()
    out, _ = capsys.readouterr()
    assert "Invalid configuration" in out
