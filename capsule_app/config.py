"""Configuration helpers for the capsule concierge service."""

from dataclasses import dataclass
from pathlib import Path
import os
from typing import Optional

DEFAULT_GEMINI_MODEL = "models/gemini-1.5-flash-002"
DEFAULT_DATABASE_PATH = "data/capsules.db"


@dataclass
class CapsuleConfig:
    """Configuration values for the service.

    Secrets such as the Gemini API key are expected from the runtime
    environment; everything else may also live in an environment YAML file.
    """

    model: str = DEFAULT_GEMINI_MODEL
    api_key: Optional[str] = None
    database_path: str = DEFAULT_DATABASE_PATH
    temperature: float = 0.7
    environment: str | None = None

    @classmethod
    def from_env(cls) -> "CapsuleConfig":
        """Build a config from environment variables or an environment YAML file.

        Environment specific YAML lives in ``config/environments/<env>.yaml`` by
        default; environment variables take precedence over file values.
        """

        env_name = os.getenv("APP_ENV")
        config_path = os.getenv("APP_CONFIG_PATH")
        config_dir = Path(os.getenv("CAPSULE_CONFIG_DIR", "config/environments"))
        yaml_config: dict = {}

        if config_path:
            path = Path(config_path)
        elif env_name:
            path = config_dir / f"{env_name}.yaml"
        else:
            path = None

        if path and path.exists():
            yaml_config = cls._load_yaml_config(path)

        def get_value(key: str, default: Optional[str] = None, env_key: Optional[str] = None) -> Optional[str]:
            return os.getenv(env_key or key.upper(), yaml_config.get(key, default))

        model = get_value("model", DEFAULT_GEMINI_MODEL, env_key="GEMINI_MODEL")
        api_key = get_value("google_api_key")
        database_path = get_value("database_path", DEFAULT_DATABASE_PATH, env_key="CAPSULE_DB_PATH")
        temperature = get_value("temperature", "0.7", env_key="GEMINI_TEMPERATURE")

        return cls(
            model=str(model or DEFAULT_GEMINI_MODEL),
            api_key=api_key,
            database_path=str(database_path or DEFAULT_DATABASE_PATH),
            temperature=float(temperature or 0.7),
            environment=env_name,
        )

    @staticmethod
    def _load_yaml_config(path: Path) -> dict:
        """Parse a minimal ``key: value`` config file."""

        config: dict[str, str] = {}
        for line in path.read_text().splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if ":" not in stripped:
                continue
            key, raw_value = stripped.split(":", 1)
            value = raw_value.strip()
            if (value.startswith("\"") and value.endswith("\"")) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]
            config[key.strip()] = value
        return config
