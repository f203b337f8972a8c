"""
Tests for YAML config loading and environment overrides.
"""
import pytest
from pydantic import ValidationError

from core.scoring import DEFAULT_WEIGHTS
from services.config import Config, load_config

ENV_KEYS = (
    "VERIFIER_CONFIG", "DATABASE_PATH", "OLLAMA_BASE_URL", "OLLAMA_MODEL",
    "BOT_NAME", "VERIFIER_MODE", "VERIFIER_LIMIT", "VERIFIER_CHANNEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    # keep load_dotenv from picking up a developer .env
    monkeypatch.chdir(tmp_path)


def test_defaults():
    config = Config()
    assert config.runner.mode == "scan"
    assert config.runner.limit == 100
    assert config.thresholds.min_answer_length == 50
    assert config.scoring.weights == DEFAULT_WEIGHTS
    assert config.similarity.threshold == 0.75


def test_load_yaml(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text(
        "DATABASE_PATH: /tmp/bots.db\n"
        "OLLAMA_MODEL: qwen2.5:7b\n"
        "runner:\n"
        "  mode: queue\n"
        "  limit: 25\n"
        "thresholds:\n"
        "  min_answer_length: 80\n"
        "similarity:\n"
        "  likely_threshold: 0.9\n"
    )

    config = load_config(str(path))

    assert config.DATABASE_PATH == "/tmp/bots.db"
    assert config.OLLAMA_MODEL == "qwen2.5:7b"
    assert config.runner.mode == "queue"
    assert config.runner.limit == 25
    assert config.runner.item_delay_seconds == 0.8
    assert config.thresholds.min_answer_length == 80
    assert config.thresholds.min_question_length == 30
    assert config.similarity.likely_threshold == 0.9


def test_env_overrides_yaml(tmp_path, monkeypatch):
    path = tmp_path / "config.yml"
    path.write_text("BOT_NAME: verifier\nrunner:\n  limit: 25\n")
    monkeypatch.setenv("BOT_NAME", "verifier-2")
    monkeypatch.setenv("VERIFIER_LIMIT", "5")
    monkeypatch.setenv("VERIFIER_CHANNEL", "devops")

    config = load_config(str(path))

    assert config.BOT_NAME == "verifier-2"
    assert config.runner.limit == 5
    assert config.runner.channel == "devops"


def test_config_path_from_env(tmp_path, monkeypatch):
    path = tmp_path / "custom.yml"
    path.write_text("PROCESSOR_BOT: fixer\n")
    monkeypatch.setenv("VERIFIER_CONFIG", str(path))

    assert load_config().PROCESSOR_BOT == "fixer"


def test_empty_yaml_uses_defaults(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("")

    config = load_config(str(path))
    assert config.BOT_NAME == "verifier"


def test_unknown_mode_is_rejected(tmp_path, monkeypatch):
    path = tmp_path / "config.yml"
    path.write_text("runner:\n  mode: queue\n")
    monkeypatch.setenv("VERIFIER_MODE", "sweep")

    with pytest.raises(ValidationError):
        load_config(str(path))
