"""Application settings for prop-legs."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from prop_legs.runtime_config import current_runtime_config


class Settings(BaseSettings):
    """Environment-level settings layered on top of the runtime config."""

    model_config = SettingsConfigDict(
        env_prefix="PROP_LEGS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    default_preset: str = "balanced"
    data_dir: str = "data"
    reports_dir: str = "data/reports"
    rules_path: str = "config/rules.toml"
    write_parquet: bool = False
    log_level: str = Field(default="WARNING", pattern=r"(?i)^(debug|info|warning|error)$")

    @classmethod
    def from_runtime(cls) -> "Settings":
        """Construct settings from the active runtime config; explicit env vars win."""
        runtime = current_runtime_config()
        from_env = cls()
        config_values = {
            "default_preset": runtime.default_preset,
            "data_dir": str(runtime.data_dir),
            "reports_dir": str(runtime.reports_dir),
            "rules_path": str(runtime.rules_path),
            "write_parquet": runtime.write_parquet,
        }
        return from_env.model_copy(
            update={
                key: value
                for key, value in config_values.items()
                if key not in from_env.model_fields_set
            }
        )
