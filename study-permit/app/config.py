from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).resolve().parent.parent
REPO_DIR = BASE_DIR.parent


class Settings(BaseSettings):
    environment: str = "development"
    log_level: str = "INFO"
    frontend_url: str = "http://localhost:5173"

    # Optional AI tips; static tips are served when the key is blank
    anthropic_api_key: str = ""
    ai_model: str = "claude-sonnet-4-5-20250929"
    ai_tip_timeout: float = 8.0
    ai_tip_max_tokens: int = 400

    templates_dir: Path = BASE_DIR / "templates"
    pdf_template_name: str = "imm1294e.pdf"
    field_mapping_name: str = "field-mapping.json"

    layout_overflow: str = "paginate"  # "paginate" or "truncate"
    max_previous_residences: int | None = None
    max_employment_rows: int | None = None

    model_config = {"env_file": REPO_DIR / ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def ai_enabled(self) -> bool:
        return bool(self.anthropic_api_key.strip())

    @property
    def pdf_template_path(self) -> Path:
        return self.templates_dir / self.pdf_template_name

    @property
    def field_mapping_path(self) -> Path:
        return self.templates_dir / self.field_mapping_name


@lru_cache
def get_settings() -> Settings:
    return Settings()
