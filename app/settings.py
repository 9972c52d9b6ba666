from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


def choose_env_file() -> str:
    return ".env.local" if Path(".env.local").exists() else ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=choose_env_file(),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # tolerate unrelated env vars
    )

    # GitHub
    GITHUB_TOKEN: str = ""
    GITHUB_OWNER: str = ""
    GITHUB_REPO: str = ""
    GITHUB_API_URL: str = "https://api.github.com"

    # Branch workflow
    MAIN_BRANCH: str = "main"
    BRANCH_PREFIX: str = "cms/"
    POSTS_DIR: str = "posts/"
    DRAFT_PREFIX: str = "wip_"
    CACHE_TTL_SECONDS: float = 300

    # Commit author (optional, GitHub falls back to the token owner)
    COMMIT_AUTHOR_NAME: str = ""
    COMMIT_AUTHOR_EMAIL: str = ""

    # Front matter defaults
    SITE_URL: str = "http://localhost:3000"
    POST_AUTHOR: str = ""
    TWITTER_ID: str = ""
    GITHUB_ID: str = ""
    MAIL: str = ""
    SITE_NAME: str = ""
    TWITTER_SITE: str = ""

    # Logging
    LOG_LEVEL: str = "INFO"

    # Editor gate
    CMS_API_KEY: str = ""
    ALLOWED_EDITORS: str = ""

    @property
    def repo_api_url(self) -> str:
        base = self.GITHUB_API_URL.rstrip("/")
        return f"{base}/repos/{self.GITHUB_OWNER}/{self.GITHUB_REPO}"

    @property
    def allowed_editors(self) -> List[str]:
        return [name.strip() for name in self.ALLOWED_EDITORS.split(",") if name.strip()]

    @property
    def commit_author(self) -> dict | None:
        if not (self.COMMIT_AUTHOR_NAME and self.COMMIT_AUTHOR_EMAIL):
            return None
        return {"name": self.COMMIT_AUTHOR_NAME, "email": self.COMMIT_AUTHOR_EMAIL}


# Global settings instance (evaluated at import, but reads env on construction)
settings = Settings()
