from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "tutelas"
    db_username: str = "tutelas"
    db_password: str = "secret"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 5

    actor_id: str = ""

    storage_backend: str = "local"
    storage_root: str = "./storage"
    storage_public_base_url: str = ""
    documents_bucket: str = "tutela-pdfs"
    attachments_bucket: str = "tutela-attachments"
    s3_region: str = "us-east-1"
    s3_endpoint_url: str = ""

    pdf_engine: str = "auto"
    pdf_max_pages: int = 3

    extraction_engine: str = "example"
    extraction_timeout_seconds: float = Field(60.0, gt=0)

    extraction_openai_api_key: str = ""
    extraction_openai_model_name: str = "gpt-4o-mini"
    extraction_openai_base_url: str = ""
    extraction_openai_timeout_seconds: int = 30
    extraction_openai_temperature: float = 0.0
