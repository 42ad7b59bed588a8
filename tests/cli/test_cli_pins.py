import json
from unittest.mock import patch

import pytest

from atlas.cli.pins import main as pins_main
from atlas.core.pins import Pin
from atlas.services.pin_repository import PinRepository


def run(argv):
    with patch("sys.argv", ["pins.py"] + argv):
        with pytest.raises(SystemExit) as e:
            pins_main()
    return e.value.code


@pytest.fixture
def data_dir(tmp_path):
    repo = PinRepository(str(tmp_path))
    repo.replace_all(
        [
            Pin(
                id="harbor",
                x=0.25,
                y=0.5,
                title="The Harbor",
                linked_category="places",
                linked_slug="harbor",
            ),
            Pin(id="ruins", x=0.75, y=0.2, title="Old Ruins"),
        ]
    )
    return str(tmp_path)


def test_list(data_dir, capsys):
    assert run(["list", "-d", data_dir]) == 0
    out, _ = capsys.readouterr()
    assert "Found 2 pin(s)" in out
    assert "The Harbor (harbor)" in out
    assert "Links to: /lore/places/harbor" in out


def test_list_json(data_dir, capsys):
    assert run(["list", "-d", data_dir, "--json"]) == 0
    out, _ = capsys.readouterr()
    assert [p["id"] for p in json.loads(out)] == ["harbor", "ruins"]


def test_add(data_dir, capsys):
    code = run(
        ["add", "-d", data_dir, "--id", "tower", "-t", "Tower", "--x", "1.5", "--y", "0.1"]
    )
    assert code == 0
    out, _ = capsys.readouterr()
    assert "Added pin: tower" in out

    pin = PinRepository(data_dir).read_all()[-1]
    assert (pin.id, pin.title, pin.x) == ("tower", "Tower", 1.0)


def test_add_generates_id_and_title(tmp_path):
    assert run(["add", "-d", str(tmp_path), "--x", "0.5", "--y", "0.5"]) == 0
    (pin,) = PinRepository(str(tmp_path)).read_all()
    assert pin.id
    assert pin.title == "Untitled"


def test_add_duplicate_id(data_dir, capsys):
    assert run(["add", "-d", data_dir, "--id", "ruins", "--x", "0", "--y", "0"]) == 1
    out, _ = capsys.readouterr()
    assert "duplicate id" in out


def test_add_blank_id_rejected(data_dir, capsys):
    assert run(["add", "-d", data_dir, "--id", "  ", "--x", "0.5", "--y", "0.5"]) == 1
    out, _ = capsys.readouterr()
    assert "must be a non-empty string" in out
    assert len(PinRepository(data_dir).read_all()) == 2


def test_add_half_link_rejected(data_dir, capsys):
    code = run(
        ["add", "-d", data_dir, "--x", "0", "--y", "0", "--category", "places"]
    )
    assert code == 1
    out, _ = capsys.readouterr()
    assert "--category and --slug must be given together" in out
    assert len(PinRepository(data_dir).read_all()) == 2


def test_remove(data_dir, capsys):
    assert run(["remove", "-d", data_dir, "--id", "ruins"]) == 0
    assert [p.id for p in PinRepository(data_dir).read_all()] == ["harbor"]

    assert run(["remove", "-d", data_dir, "--id", "ruins"]) == 1
    out, _ = capsys.readouterr()
    assert "Pin not found: ruins" in out


def test_validate(data_dir, capsys):
    assert run(["validate", "-d", data_dir]) == 0
    out, _ = capsys.readouterr()
    assert "2 valid pin(s), 1 without a link" in out


def test_validate_corrupt_store(tmp_path, capsys):
    (tmp_path / "world-map-pins.json").write_text('{"pins": [{"id": 3}]}')
    assert run(["validate", "-d", str(tmp_path)]) == 1
    out, _ = capsys.readouterr()
    assert "Invalid pin store" in out


def test_no_command_prints_help(capsys):
    assert run([]) == 1
    out, _ = capsys.readouterr()
    assert "usage" in out.lower()
