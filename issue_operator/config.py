"""Operator configuration"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Operator settings"""

    # Resource store
    database_url: str = "sqlite:///./issue_operator.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # GitHub REST API
    github_api_url: str = "https://api.github.com"
    github_accept: str = "application/vnd.github.v3+json"
    github_request_timeout_seconds: float = 30.0

    # Where the API token lives (secret namespace/name and the key inside it)
    token_secret_namespace: str = "github-operator-system"
    token_secret_name: str = "github-token"
    token_secret_key: str = "token"

    # Reconciliation
    finalizer: str = "githubIssue.finalizers.my.domain"
    requeue_after_seconds: int = 60
    # Upper bound on a single reconcile cycle, HTTP calls included.
    reconcile_deadline_seconds: float = 120.0
    # "title": match remote issues by title on every cycle.
    # "number": remember the created issue number in status, fall back to title.
    issue_match_strategy: str = "title"
    reconcile_workers: int = 4
    backoff_base_seconds: float = 5.0
    backoff_max_seconds: float = 300.0

    # Namespace admission logger
    admission_log_path: str = "/var/log/webhook.log"

    # Logging
    log_level: str = "INFO"

    # Auth (optional)
    # When enabled, every route except /health and the admission webhook
    # requires HTTP Basic auth.
    auth_enabled: bool = False
    auth_username: str | None = None
    auth_password: str | None = None

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
