import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from dmbot import Config, ConfigBootstrapError, DMBot, Message, ShipApi, load_local_config


def test_missing_config_writes_template_and_raises(tmp_path: Path) -> None:
    path = tmp_path / "conf" / "ship_config.json"

    with pytest.raises(ConfigBootstrapError, match="template"):
        load_local_config(path)

    assert json.loads(path.read_text()) == {
        "ship_url": "http://0.0.0.0:8080",
        "ship_code": "",
    }


def test_template_without_code_still_refuses_to_start(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("DMBOT_SHIP_CODE", raising=False)
    path = tmp_path / "ship_config.json"
    path.write_text(json.dumps({"ship_url": "http://localhost:8080", "ship_code": ""}))

    with pytest.raises(ConfigBootstrapError, match="ship_code"):
        load_local_config(path)


def test_blank_file_fields_fall_back_to_environment(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("DMBOT_SHIP_CODE", "lidlut-tabwed-pillex-ridrup")
    path = tmp_path / "ship_config.json"
    path.write_text(json.dumps({"ship_url": "http://localhost:8080/", "ship_code": ""}))

    config = load_local_config(path)

    assert config.ship_code == "lidlut-tabwed-pillex-ridrup"
    assert config.ship_url == "http://localhost:8080"
    assert config.poll_interval_seconds == 1.0


def test_invalid_config_values_are_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValidationError, match="ship_url"):
        Config(ship_url="localhost:8080", ship_code="x")
    with pytest.raises(ValidationError, match="poll_interval_seconds"):
        Config(ship_code="x", poll_interval_seconds=0)

    path = tmp_path / "ship_config.json"
    path.write_text("[]")
    with pytest.raises(ValueError, match="JSON object"):
        load_local_config(path)


def test_dm_bot_from_local_config(tmp_path: Path) -> None:
    path = tmp_path / "ship_config.json"
    path.write_text(
        json.dumps(
            {
                "ship_url": "http://localhost:8080",
                "ship_code": "code",
                "poll_interval_seconds": 2.5,
            }
        )
    )

    bot = DMBot.from_local_config(lambda _m: Message().add_text("hi"), path)

    assert isinstance(bot.ship, ShipApi)
    assert bot.ship.url == "http://localhost:8080"
    assert bot.poll_interval_seconds == 2.5
