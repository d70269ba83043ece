"""
CLI Tests (main.py)
"""

import json

import pytest
from loguru import logger

from main import _parse_params, build_parser, main
from extensions import ParameterError


@pytest.fixture(autouse=True)
def _drop_cli_sinks():
    """main() ersetzt die loguru-Sinks; danach wieder entfernen."""
    yield
    logger.remove()


class TestParseParams:

    def test_key_value(self):
        assert _parse_params(["width=20", " label = a=b "]) == {"width": "20", "label": "a=b"}

    @pytest.mark.parametrize("item", ["width", "=20"])
    def test_malformed(self, item):
        with pytest.raises(ParameterError):
            _parse_params([item])


class TestMain:

    def test_list(self, capsys):
        assert main(["--list"]) == 0

        out = capsys.readouterr().out
        assert "base-box" in out
        assert "test-2" in out

    def test_activate_base_box(self, capsys):
        assert main(["base-box", "--param", "width=20"]) == 0

        result = json.loads(capsys.readouterr().out)
        assert result["kind"] == "box"
        assert result["bbox_max"] == [20.0, 20.0, 20.0]
        assert result["volume"] == pytest.approx(8000.0)

    def test_save_and_load(self, tmp_path, capsys):
        path = tmp_path / "box.json"

        assert main(["base-box", "--save", str(path)]) == 0
        first = json.loads(capsys.readouterr().out)

        assert main(["--load", str(path)]) == 0
        second = json.loads(capsys.readouterr().out)

        assert first == second

    def test_empty_history(self):
        assert main([]) == 1

    def test_unknown_tool(self):
        assert main(["does-not-exist"]) == 2

    def test_invalid_param(self):
        assert main(["base-box", "--param", "width=abc"]) == 2

    def test_failed_evaluation(self):
        assert main(["base-box", "--param", "width=0"]) == 2

    def test_missing_file(self, tmp_path):
        assert main(["--load", str(tmp_path / "missing.json")]) == 2

    def test_version(self, capsys):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--version"])

        assert "ParaCore" in capsys.readouterr().out

    def test_save_even_if_evaluation_fails(self, tmp_path):
        path = tmp_path / "broken.json"

        assert main(["base-box", "--param", "width=0", "--save", str(path)]) == 2

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["features"][0]["operation_name"] == "makeBaseBox"
        assert data["features"][0]["arguments"] == [0.0, 0.0, 0.0]
