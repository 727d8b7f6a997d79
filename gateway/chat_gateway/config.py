import os
from pathlib import Path

import yaml
from pydantic import SecretStr
from pydantic_settings import BaseSettings

PLACEHOLDER_API_KEYS = {"", "your_gemini_api_key"}

DEFAULT_RUNNER_NAMES = [
    "llama-cli",
    "llama-main",
    "llama",
    "main",
    "llama_main",
    "llama.cpp",
    "llama_cpp",
]

DEFAULT_RUNNER_DIRS = [
    "/usr/bin",
    "/usr/local/bin",
    "/opt/llama.cpp",
    "/opt/llama.cpp/build",
    "/opt/llama.cpp/build/bin",
    "/opt/llama",
    "/opt/llama/build",
    "~/llama.cpp",
    "~/llama.cpp/build",
    "~/llama.cpp/build/bin",
    "~/llama",
    "~/llama/build",
]


class Settings(BaseSettings):
    gateway_config_path: str = ""
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: str = "*"

    models_dir: str = "./models"
    model_extension: str = ".gguf"
    workspace_dir: str = ""
    llama_path: str = ""
    process_timeout_seconds: float = 60.0
    fallback_timeout_seconds: float = 30.0
    terminate_grace_seconds: float = 2.0

    daemon_url: str = "http://localhost:11434"
    daemon_probe_timeout_seconds: float = 3.0
    daemon_timeout_seconds: float = 300.0

    gemini_api_key: SecretStr | None = None
    gemini_api_url: str = (
        "https://generativelanguage.googleapis.com/v1beta/models/gemini-pro:generateContent"
    )
    remote_timeout_seconds: float = 60.0

    simulated_delay_seconds: float = 0.8

    model_config = {
        "env_prefix": "CHATGATE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def resolved_models_dir(self) -> str:
        return os.path.abspath(os.path.expanduser(self.models_dir))

    @property
    def resolved_workspace_dir(self) -> str:
        if self.workspace_dir:
            return os.path.abspath(os.path.expanduser(self.workspace_dir))
        return os.path.join(self.resolved_models_dir, ".jobs")

    def remote_api_key(self) -> str | None:
        """Return the usable Gemini key, or None when unset or a placeholder."""
        if self.gemini_api_key is None:
            return None
        key = self.gemini_api_key.get_secret_value().strip()
        if key in PLACEHOLDER_API_KEYS:
            return None
        return key

    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()


def load_gateway_config(path: str) -> dict:
    """Load optional gateway overrides from YAML config.

    An empty path means "use built-in defaults"; a configured path that is
    missing is a startup error.
    """
    if not path:
        return {}
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Gateway config not found: {config_path}")
    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def get_runner_search(config: dict) -> tuple[list[str], list[str]]:
    """Return (candidate_dirs, candidate_names) for the model-runner search."""
    runner = config.get("runner") or {}
    dirs = runner.get("candidate_dirs") or DEFAULT_RUNNER_DIRS
    names = runner.get("candidate_names") or DEFAULT_RUNNER_NAMES
    return [os.path.expanduser(str(d)) for d in dirs], [str(n) for n in names]
