"""GPT-SoVITS api_v2 backend: request model, HTTP client and process launcher."""

import logging
import subprocess
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

import httpx

from .config import TTSBackendConfig

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://127.0.0.1:9880"
REQUEST_TIMEOUT_SEC = 120.0


@dataclass
class TTSRequest:
    """Body of POST /tts.  text, text_lang, ref_audio_path and prompt_lang are required."""

    text: str
    text_lang: str
    ref_audio_path: str
    prompt_lang: str
    prompt_text: str = ""
    aux_ref_audio_paths: list[str] = field(default_factory=list)
    top_k: int = 5
    top_p: float = 1.0
    temperature: float = 1.0
    text_split_method: str = "cut5"
    batch_size: int = 1
    batch_threshold: float = 0.75
    split_bucket: bool = True
    speed_factor: float = 1.0
    fragment_interval: float = 0.3
    seed: int = -1
    media_type: str = "wav"
    streaming_mode: bool = False
    parallel_infer: bool = True
    repetition_penalty: float = 1.35
    sample_steps: int = 32
    super_sampling: bool = False

    def validate(self) -> None:
        """Raises ValueError naming the first empty required field."""
        for name in ("text", "text_lang", "ref_audio_path", "prompt_lang"):
            if not getattr(self, name):
                raise ValueError(f"TTSRequest.{name} must not be empty")

    def to_dict(self) -> dict:
        return asdict(self)


class TTSClient:
    """Thin client for a running GPT-SoVITS api_v2 server."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.Client(timeout=REQUEST_TIMEOUT_SEC)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "TTSClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @staticmethod
    def _check(response: httpx.Response) -> bytes:
        if response.status_code != 200:
            raise RuntimeError(
                f"TTS backend returned status {response.status_code}: "
                f"{response.text[:500]}"
            )
        return response.content

    def synthesize(self, request: TTSRequest) -> bytes:
        """Return the synthesised audio bytes.

        Raises:
            ValueError: If a required request field is empty.
            RuntimeError: On a non-200 response.
        """
        request.validate()
        response = self.client.post(f"{self.base_url}/tts", json=request.to_dict())
        return self._check(response)

    def _set_weights(self, endpoint: str, weights_path: str) -> bytes:
        if not weights_path:
            raise ValueError("weights_path must not be empty")
        response = self.client.get(
            f"{self.base_url}/{endpoint}", params={"weights_path": weights_path}
        )
        return self._check(response)

    def set_gpt_weights(self, weights_path: str) -> bytes:
        return self._set_weights("set_gpt_weights", weights_path)

    def set_sovits_weights(self, weights_path: str) -> bytes:
        return self._set_weights("set_sovits_weights", weights_path)


def backend_command(config: TTSBackendConfig) -> list[str]:
    return [
        config.python,
        "api_v2.py",
        "-a", config.host,
        "-p", str(config.port),
        "-c", config.tts_config,
    ]


def launch_backend(config: TTSBackendConfig) -> subprocess.Popen:
    """Start the api_v2 server inside ``gsv_path`` and return the process.

    Raises:
        FileNotFoundError: If gsv_path is not a directory.
    """
    workdir = Path(config.gsv_path)
    if not workdir.is_dir():
        raise FileNotFoundError(f"GPT-SoVITS directory not found: {workdir}")
    cmd = backend_command(config)
    logger.info("launching TTS backend: %s (cwd=%s)", " ".join(cmd), workdir)
    return subprocess.Popen(cmd, cwd=str(workdir))
