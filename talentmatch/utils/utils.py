import os
import json
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError

from talentmatch.models.ai_settings import AISettings, LLMSettings, ProcessingSettings, ScoringThresholds
from talentmatch.utils.exceptions import ConfigurationError

load_dotenv()

_ENV_MAP = {
    "llm_settings": {
        "model_name": "LLM_MODEL",
        "base_url": "OLLAMA_BASE_URL",
        "temperature": "LLM_TEMPERATURE",
        "max_tokens": "LLM_MAX_TOKENS",
        "timeout": "LLM_TIMEOUT",
    },
    "processing_settings": {
        "max_chunk_size": "MAX_CHUNK_SIZE",
        "min_text_length": "MIN_TEXT_LENGTH",
        "retry_attempts": "RETRY_ATTEMPTS",
        "retry_delay": "RETRY_DELAY",
    },
    "scoring_thresholds": {
        "match_threshold": "MATCH_THRESHOLD",
    },
}


def load_settings(env: Optional[Dict[str, str]] = None) -> AISettings:
    """Build AISettings from environment variables, falling back to model defaults."""
    env = os.environ if env is None else env
    sections: Dict[str, Dict[str, Any]] = {}
    for section, fields in _ENV_MAP.items():
        values = {}
        for field, var in fields.items():
            raw = env.get(var)
            if raw is not None and raw.strip() != "":
                values[field] = raw.strip()
        sections[section] = values

    try:
        return AISettings(
            llm_settings=LLMSettings(**sections["llm_settings"]),
            processing_settings=ProcessingSettings(**sections["processing_settings"]),
            scoring_thresholds=ScoringThresholds(**sections["scoring_thresholds"]),
        )
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = str(first["loc"][0]) if first.get("loc") else None
        raise ConfigurationError(
            f"Invalid configuration: {first.get('msg')}",
            config_key=field,
            config_value=first.get("input"),
            cause=e,
        ) from e


def locate_json(s: str) -> Optional[str]:
    """Return the text between the first '{' and the last '}', or None."""
    if not s:
        return None
    start = s.find("{")
    end = s.rfind("}")
    if start < 0 or end < start:
        return None
    return s[start:end + 1]


def safe_json(s: str, fallback: Optional[dict] = None):
    try:
        located = locate_json(s)
        if located is None:
            return fallback
        data = json.loads(located)
        return data if isinstance(data, dict) else fallback
    except (TypeError, ValueError):
        return fallback
