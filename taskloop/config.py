"""Settings via pydantic-settings with TASKLOOP_ env prefix.

Credentials use validation_alias to read the standard unprefixed
ANTHROPIC_* variables. The turn loop itself never reads settings;
taskloop.agent.run() and the CLI translate them into run options.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TASKLOOP_", env_file=".env")

    log_level: str = "info"

    # LLM
    model: str = "claude-sonnet-4-5"
    max_tokens: int = 8192
    anthropic_api_key: str = Field("", validation_alias="ANTHROPIC_API_KEY")
    # Dual auth: auth_token (Bearer) takes precedence over api_key (x-api-key)
    anthropic_auth_token: str = Field("", validation_alias="ANTHROPIC_AUTH_TOKEN")
    api_base_url: str = "https://api.anthropic.com"
    api_timeout_connect: int = 10  # seconds
    api_timeout_read: int = 120  # seconds

    # Loop
    max_turns: int = 200  # Max model round trips per run
    instructions: str = ""  # Extra instructions appended to the system prompt
    skill_dirs: list[str] = Field(default_factory=list)

    # Local executor
    workspace_dir: str = "."
    shell_timeout: float = 60.0  # seconds

    @model_validator(mode="after")
    def _validate_limits(self) -> "Settings":
        if self.max_turns < 1:
            raise ValueError("max_turns must be >= 1")
        if self.shell_timeout <= 0:
            raise ValueError("shell_timeout must be > 0")
        return self

    def executor_opts(self) -> dict[str, object]:
        """Executor options derived from settings."""
        return {"cwd": self.workspace_dir, "timeout": self.shell_timeout}
