"""
tests/test_config.py: configuration loading, CLI options, logging and result storage.
"""
import json
import logging

import pytest

from sopwizard.__main__ import parse_args
from sopwizard.config import Config, get_config
from sopwizard.interview import InterviewWizard, SOPResultStore
from sopwizard.utils import setup_logging


def test_defaults_validate():
    config = get_config()
    assert config.transcribe_backend == "http"
    assert config.transcribe_timeout > 0


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SOPWIZARD_TRANSCRIBE_URL", "http://stt.internal/transcribe")
    monkeypatch.setenv("SOPWIZARD_TRANSCRIBE_TIMEOUT", "4.5")
    monkeypatch.setenv("SOPWIZARD_ENABLE_VOICE", "no")
    monkeypatch.setenv("SOPWIZARD_LANGUAGE_CODE", "en-GB")

    config = get_config()
    assert config.transcribe_url == "http://stt.internal/transcribe"
    assert config.transcribe_timeout == 4.5
    assert config.enable_voice is False
    assert config.language_code == "en-GB"


@pytest.mark.parametrize("name,value", [
    ("SOPWIZARD_TRANSCRIBE_BACKEND", "carrier-pigeon"),
    ("SOPWIZARD_TRANSCRIBE_TIMEOUT", "soon"),
    ("SOPWIZARD_TRANSCRIBE_TIMEOUT", "-1"),
])
def test_invalid_settings_raise(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError):
        get_config()


def test_cli_flags():
    config = Config(enable_voice=True)
    options = parse_args(["--text", "--timeout=7", "--out=/tmp/sop.json"], config)
    assert options == {"use_voice": False, "timeout": 7.0, "out": "/tmp/sop.json"}

    assert parse_args(["--voice"], Config(enable_voice=False))["use_voice"] is True


@pytest.mark.parametrize("arg", ["--timeout=abc", "--timeout=0"])
def test_cli_rejects_bad_timeout(arg):
    with pytest.raises(ValueError):
        parse_args([arg], Config())


def test_setup_logging_writes_file(tmp_path):
    path = setup_logging(str(tmp_path / "logs" / "wizard.log"), "DEBUG")
    logging.getLogger("state_machine").info("hello log")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "hello log" in open(path).read()
    logging.getLogger().handlers.clear()


def test_setup_logging_rejects_unknown_level(tmp_path):
    with pytest.raises(ValueError):
        setup_logging(str(tmp_path / "wizard.log"), "CHATTY")


def test_result_store_round_trip(tmp_path, scenario_answers):
    wizard = InterviewWizard(config=Config(enable_voice=False))
    for answer in scenario_answers:
        wizard.submit_text(answer)

    store = SOPResultStore(str(tmp_path / "sops"))
    path = store.save(wizard.result)
    data = store.load(path)

    assert path.endswith(f"sop_{wizard.session_id}.json")
    assert data["document"]["title"] == "Return Handling"
    assert [s["sequence_number"] for s in data["steps"]] == [1, 2]
    assert data["turns"][0]["speaker"] == "system"
    assert json.dumps(data)
