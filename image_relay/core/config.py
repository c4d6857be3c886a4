import os
from pydantic import BaseModel
from typing import List
from dotenv import load_dotenv

from .errors import ConfigurationError

load_dotenv()

REQUIRED_SETTINGS = {
    "github_token": "GITHUB_TOKEN",
    "repo_owner": "REPO_OWNER",
    "repo_name": "REPO_NAME",
    "telegram_token": "TELEGRAM_TOKEN",
    "webhook_url": "WEBHOOK_URL",
}

class Settings(BaseModel):
    """for reading environment-driven configuration.

    The five credentials/coordinates in REQUIRED_SETTINGS have no usable
    default; everything else falls back to values that work out of the box.
    """
    github_token: str = os.getenv("GITHUB_TOKEN", "")
    repo_owner: str = os.getenv("REPO_OWNER", "")
    repo_name: str = os.getenv("REPO_NAME", "")
    telegram_token: str = os.getenv("TELEGRAM_TOKEN", "")
    webhook_url: str = os.getenv("WEBHOOK_URL", "")
    repo_branch: str = os.getenv("REPO_BRANCH", "main")
    commit_message: str = os.getenv("COMMIT_MESSAGE", "Upload image via API")
    upload_dir: str = os.getenv("UPLOAD_DIR", "/tmp/uploads")
    github_api_url: str = os.getenv("GITHUB_API_URL", "https://api.github.com")
    telegram_api_url: str = os.getenv("TELEGRAM_API_URL", "https://api.telegram.org")
    http_timeout: float = float(os.getenv("HTTP_TIMEOUT", "30"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "3000"))

    def missing(self) -> List[str]:
        return [env for attr, env in REQUIRED_SETTINGS.items() if not getattr(self, attr)]

    def require(self) -> None:
        """Raise ConfigurationError naming every required variable that is unset."""
        missing = self.missing()
        if missing:
            raise ConfigurationError(f"missing required configuration: {', '.join(missing)}")

settings = Settings()
