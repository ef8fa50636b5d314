from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, model_validator

BASE_DIR = Path(__file__).resolve().parent.parent  # backend/

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # ===== ENVIRONMENT =====
    environment: str = Field(default="development")
    debug: bool = Field(default=False)

    # ===== DATABASE =====
    database_url: str = Field(default="sqlite:///./data/fms.db")
    database_echo: bool = Field(default=False)

    # ===== LOGGING =====
    log_dir: str = Field(default="logs")
    log_level: str = Field(default="INFO")

    # ===== CORS =====
    allowed_origins: str = Field(default="http://localhost:5173,http://localhost:3000")

    # ===== DOCUMENT NUMBERING =====
    sequence_width: int = Field(default=4)
    sequence_max_retries: int = Field(default=5)

    # ===== PAGINATION =====
    default_page_size: int = Field(default=50)
    max_page_size: int = Field(default=500)

    # ===== MAINTENANCE =====
    upcoming_plan_days: int = Field(default=7)

    @field_validator("log_level", mode="after")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        return v.strip().upper() if v and v.strip() else "INFO"

    @model_validator(mode="after")
    def validate_limits(self):
        if self.sequence_width < 1:
            raise ValueError("SEQUENCE_WIDTH must be at least 1.")
        if self.sequence_max_retries < 1:
            raise ValueError("SEQUENCE_MAX_RETRIES must be at least 1.")
        if self.default_page_size > self.max_page_size:
            raise ValueError("DEFAULT_PAGE_SIZE cannot exceed MAX_PAGE_SIZE.")
        return self

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def log_path(self) -> Path:
        """
        Log directory.
        - Relative values resolve against backend/
        - Absolute values are used as given (Docker/VPS)
        """
        path = Path(self.log_dir)
        return path if path.is_absolute() else BASE_DIR / path


settings = Settings()
