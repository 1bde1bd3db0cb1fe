"""
Application configuration using environment variables.
"""
import os
from dataclasses import dataclass, field, replace
from typing import List, Optional
from dotenv import load_dotenv

# Load .env file
load_dotenv()

@dataclass
class Settings:
    """Application settings."""
    APP_NAME: str = "Lab Auditor"
    
    # Target under audit
    AUDIT_BASE_URL: str = os.getenv("AUDIT_BASE_URL", "http://localhost:5000")
    AUDIT_TOKEN: str = os.getenv("AUDIT_TOKEN", "")
    AUDIT_PROJECT_ROOT: str = os.getenv("AUDIT_PROJECT_ROOT", ".")
    
    # Reports
    AUDIT_REPORTS_DIR: str = os.getenv("AUDIT_REPORTS_DIR", "reports")
    
    # HTTP client settings
    HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", "15"))
    HTTP_MAX_RETRIES: int = int(os.getenv("HTTP_MAX_RETRIES", "2"))
    
    # Harness
    AUDIT_CONCURRENCY: int = int(os.getenv("AUDIT_CONCURRENCY", "1"))
    
    # Circuit breaker (per target)
    CIRCUIT_FAILURE_THRESHOLD: int = int(os.getenv("CIRCUIT_FAILURE_THRESHOLD", "5"))
    CIRCUIT_COOLDOWN_SECONDS: int = int(os.getenv("CIRCUIT_COOLDOWN_SECONDS", "30"))
    
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    
    # CORS
    CORS_ORIGINS: List[str] = field(default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"])

settings = Settings()


@dataclass(frozen=True)
class TargetConfig:
    """Per-run configuration handed to the harness.
    
    Built from Settings plus CLI/API overrides, so two runs in one process
    can point at different targets.
    """
    base_url: str
    token: str = ""
    project_root: str = "."
    reports_dir: str = "reports"
    timeout: float = 15.0
    max_retries: int = 2
    concurrency: int = 1
    
    @classmethod
    def from_settings(cls, settings: Settings = settings, **overrides) -> "TargetConfig":
        """Build a TargetConfig, ignoring overrides that are None."""
        config = cls(
            base_url=settings.AUDIT_BASE_URL,
            token=settings.AUDIT_TOKEN,
            project_root=settings.AUDIT_PROJECT_ROOT,
            reports_dir=settings.AUDIT_REPORTS_DIR,
            timeout=settings.HTTP_TIMEOUT,
            max_retries=settings.HTTP_MAX_RETRIES,
            concurrency=settings.AUDIT_CONCURRENCY,
        )
        given = {k: v for k, v in overrides.items() if v is not None}
        if given:
            config = replace(config, **given)
        return config
    
    def url_for(self, path: str) -> str:
        """Join the base URL and an endpoint path."""
        return self.base_url.rstrip("/") + "/" + path.lstrip("/")
    
    @property
    def auth_header(self) -> Optional[dict]:
        if not self.token:
            return None
        return {"Authorization": f"Bearer {self.token}"}
