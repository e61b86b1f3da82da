"""Configuration management for bugexplorer."""

from pathlib import Path

import yaml
from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RepoConfig(BaseModel):
    """Configuration for a single repository."""

    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class ReposConfig(BaseModel):
    """Repository list configuration loaded from repos.yaml."""

    defaults: dict[str, str] = Field(default_factory=dict)
    repos: list[dict] = Field(default_factory=list)

    def get_repos(self) -> list[RepoConfig]:
        """Resolve repos with defaults applied.

        Returns:
            List of RepoConfig with owner defaulted if not specified.
        """
        default_owner = self.defaults.get("owner", "")
        return [
            RepoConfig(owner=r.get("owner", default_owner), name=r["name"])
            for r in self.repos
        ]


class Settings(BaseSettings):
    """Application settings from environment variables and config files."""

    model_config = SettingsConfigDict(
        env_prefix="BUGEXPLORER_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    github_token: str = Field(
        default="",
        validation_alias=AliasChoices(
            "BUGEXPLORER_GITHUB_TOKEN", "GITHUB_TOKEN", "GITHUB_API_TOKEN"
        ),
    )
    api_base_url: str = "https://api.github.com"
    request_timeout: float = 30.0
    cache_ttl_seconds: int = 3600
    commit_limit: int = 1000
    branch_limit: int = 20
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"
    config_dir: Path = Path("config")

    def load_repos(self) -> list[RepoConfig]:
        """Load repository configuration from repos.yaml.

        Returns:
            List of configured repositories.
        """
        repos_file = self.config_dir / "repos.yaml"
        if not repos_file.exists():
            return []

        with open(repos_file) as f:
            data = yaml.safe_load(f) or {}

        config = ReposConfig(**data)
        return config.get_repos()


def get_settings() -> Settings:
    """Get application settings instance.

    Returns:
        Settings loaded from environment and config files.
    """
    return Settings()
