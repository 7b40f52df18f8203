"""Application configuration contract."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field(alias="APP_ENV", default="dev")
    app_db: str = Field(alias="APP_DB", default="/tmp/codeagent.db")
    log_level: str = Field(alias="LOG_LEVEL", default="INFO")

    model_base_url: str = Field(alias="MODEL_BASE_URL", default="https://api.openai.com/v1")
    model_api_key: str = Field(alias="MODEL_API_KEY", default="")
    model_name: str = Field(alias="MODEL_NAME", default="gpt-4o")
    model_temperature: float = Field(alias="MODEL_TEMPERATURE", default=0.1)
    model_max_tokens: int = Field(alias="MODEL_MAX_TOKENS", default=4096)
    model_timeout_seconds: int = Field(alias="MODEL_TIMEOUT_SECONDS", default=120)

    sandbox_backend: str = Field(alias="SANDBOX_BACKEND", default="e2b")
    sandbox_template: str = Field(alias="SANDBOX_TEMPLATE", default="code-agent-nextjs")
    sandbox_port: int = Field(alias="SANDBOX_PORT", default=3000)
    e2b_api_key: str = Field(alias="E2B_API_KEY", default="")
    local_sandbox_root: str = Field(alias="LOCAL_SANDBOX_ROOT", default="/tmp/codeagent_sandboxes")
    command_timeout_seconds: int = Field(alias="COMMAND_TIMEOUT_SECONDS", default=300)

    agent_max_iterations: int = Field(alias="AGENT_MAX_ITERATIONS", default=15)
    agent_prompt_path: str = Field(alias="AGENT_PROMPT_PATH", default="")

    workflow_max_concurrent: int = Field(alias="WORKFLOW_MAX_CONCURRENT", default=20)
    workflow_shutdown_timeout_seconds: int = Field(
        alias="WORKFLOW_SHUTDOWN_TIMEOUT_SECONDS",
        default=30,
    )

    # Security: bind host defaults to loopback
    bind_host: str = Field(alias="BIND_HOST", default="127.0.0.1")
    bind_port: int = Field(alias="BIND_PORT", default=8000)


_SANDBOX_BACKENDS = {"e2b", "local"}


def validate_settings_for_env(settings: Settings) -> None:
    import logging as _logging

    _logger = _logging.getLogger(__name__)

    if settings.sandbox_backend.strip().lower() not in _SANDBOX_BACKENDS:
        raise ValueError(f"invalid SANDBOX_BACKEND: {settings.sandbox_backend!r}")
    if settings.agent_max_iterations < 1:
        raise ValueError("AGENT_MAX_ITERATIONS must be at least 1")

    if settings.app_env != "prod":
        return

    if settings.sandbox_backend == "local":
        _logger.warning("SANDBOX_BACKEND=local in production runs commands on this host")

    missing: list[str] = []
    required_non_empty = {
        "APP_DB": settings.app_db,
        "MODEL_BASE_URL": settings.model_base_url,
        "MODEL_API_KEY": settings.model_api_key,
        "MODEL_NAME": settings.model_name,
        "SANDBOX_TEMPLATE": settings.sandbox_template,
    }
    if settings.sandbox_backend == "e2b":
        required_non_empty["E2B_API_KEY"] = settings.e2b_api_key
    for key, value in required_non_empty.items():
        if not value.strip():
            missing.append(key)
    if not settings.app_db.startswith("/"):
        missing.append("APP_DB(absolute path required)")

    if missing:
        keys = ", ".join(sorted(set(missing)))
        raise ValueError(f"invalid production configuration: {keys}")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
