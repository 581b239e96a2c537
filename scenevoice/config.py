"""Collaborator configuration: JSON files + environment overrides, schema-checked."""

import json
import os
from dataclasses import dataclass
from pathlib import Path

from .validator import validate_document

DEFAULT_CLASSIFIER_URL = "https://api.coze.cn/v3/chat"


@dataclass
class ClassifierConfig:
    token: str
    bot_id: str
    user_id: str
    api_url: str = DEFAULT_CLASSIFIER_URL
    stream: bool = True
    auto_save_history: bool = False


@dataclass
class TTSBackendConfig:
    gsv_path: str
    host: str = "127.0.0.1"
    port: int = 9880
    python: str = "runtime/python"
    tts_config: str = "GPT_SoVITS/configs/tts_infer.yaml"

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"


def _read_json(path: str | Path) -> dict:
    """Raises FileNotFoundError / json.JSONDecodeError with the path in the message."""
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    return json.loads(config_path.read_text(encoding="utf-8"))


def load_classifier_config(path: str | Path) -> ClassifierConfig:
    """Load the tone classifier config.

    TONE_API_URL and TONE_API_TOKEN, when set and non-empty, override the
    file's ``api_url`` and ``token``.

    Raises:
        FileNotFoundError: If the file does not exist.
        jsonschema.ValidationError: If a required field is missing or empty.
    """
    data = _read_json(path)
    for env_var, key in (("TONE_API_URL", "api_url"), ("TONE_API_TOKEN", "token")):
        value = os.environ.get(env_var)
        if value:
            data[key] = value
    validate_document(data, "ClassifierConfig")
    return ClassifierConfig(
        token=data["token"],
        bot_id=data["bot_id"],
        user_id=data["user_id"],
        api_url=data.get("api_url") or DEFAULT_CLASSIFIER_URL,
        stream=data.get("stream", True),
        auto_save_history=data.get("auto_save_history", False),
    )


def load_tts_backend_config(path: str | Path) -> TTSBackendConfig:
    """Load the TTS backend launch config; GSV_PATH fills ``gsv_path`` when absent.

    Raises:
        FileNotFoundError: If the file does not exist.
        jsonschema.ValidationError: If ``gsv_path`` is missing everywhere.
    """
    data = _read_json(path)
    if not data.get("gsv_path") and os.environ.get("GSV_PATH"):
        data["gsv_path"] = os.environ["GSV_PATH"]
    validate_document(data, "TTSBackendConfig")
    defaults = TTSBackendConfig(gsv_path=data["gsv_path"])
    return TTSBackendConfig(
        gsv_path=data["gsv_path"],
        host=data.get("host", defaults.host),
        port=data.get("port", defaults.port),
        python=data.get("python", defaults.python),
        tts_config=data.get("tts_config", defaults.tts_config),
    )
