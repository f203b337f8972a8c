"""
Loads and handles config from config.yml
Connection settings can be overridden from .env / the environment
"""
import logging
import os
from typing import Dict, Any, Literal, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from core.scoring import DEFAULT_WEIGHTS

logger = logging.getLogger(__name__)


class AnalyzerThresholds(BaseModel):
    """Fixed limits used by the rule-based analyzer."""
    min_question_length: int = 30
    min_answer_length: int = 50
    min_explanation_length: int = 200
    code_example_min_length: int = 300
    advanced_min_words: int = 100
    repetition_similarity: float = 0.8
    min_voice_keywords: int = 5
    max_voice_keywords: int = 12
    max_voice_sentences: int = 4


class ScoringConfig(BaseModel):
    """Dimension weights and the score limits that turn into issues."""
    weights: Dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    low_dimension_score: float = 60
    high_severity_score: float = 40


class SimilarityConfig(BaseModel):
    threshold: float = 0.75
    likely_threshold: float = 0.85
    max_candidates: int = 150
    max_matches: int = 5
    min_words: int = 3


class RunnerConfig(BaseModel):
    """Options for one verifier pass."""
    mode: Literal["scan", "queue"] = "scan"
    limit: int = 100
    channel: Optional[str] = None
    item_delay_seconds: float = 0.8
    recent_days: int = 7
    retention_days: int = 30
    report_dir: str = "output"


class Config(BaseModel):
    # Core
    DATABASE_PATH: str = "data/verifier.db"
    BOT_NAME: str = "verifier"
    PROCESSOR_BOT: str = "processor"

    # Ollama
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "llama3.1:8b"
    OLLAMA_TIMEOUT: float = 120.0
    OLLAMA_MAX_RETRIES: int = 3

    runner: RunnerConfig = RunnerConfig()
    thresholds: AnalyzerThresholds = AnalyzerThresholds()
    scoring: ScoringConfig = ScoringConfig()
    similarity: SimilarityConfig = SimilarityConfig()


def _get_config_path() -> Optional[str]:
    """Get the path to config.yml, handling different working directories."""
    env_path = os.getenv("VERIFIER_CONFIG")
    if env_path:
        return env_path

    if os.path.exists('resources/config.yml'):
        return 'resources/config.yml'

    project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    config_path = os.path.join(project_root, 'resources', 'config.yml')
    if os.path.exists(config_path):
        return config_path

    return None


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    for key in ("DATABASE_PATH", "OLLAMA_BASE_URL", "OLLAMA_MODEL", "BOT_NAME"):
        value = os.getenv(key)
        if value:
            data[key] = value

    runner = dict(data.get("runner") or {})
    if os.getenv("VERIFIER_MODE"):
        runner["mode"] = os.getenv("VERIFIER_MODE")
    if os.getenv("VERIFIER_LIMIT"):
        runner["limit"] = int(os.getenv("VERIFIER_LIMIT"))
    if os.getenv("VERIFIER_CHANNEL"):
        runner["channel"] = os.getenv("VERIFIER_CHANNEL")
    data["runner"] = runner

    return data


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from config.yml, then apply environment overrides."""
    load_dotenv()

    path = config_path or _get_config_path()
    data: Dict[str, Any] = {}

    if path:
        with open(path, 'r') as file:
            data = yaml.safe_load(file) or {}
    else:
        logger.warning("No resources/config.yml found, using defaults")

    return Config.model_validate(_apply_env_overrides(data))
