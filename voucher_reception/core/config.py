from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    app_name: str = Field("voucher-reception", alias="APP_NAME")
    app_env: str = Field("dev", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # LLM (OpenAI-compatible chat completions)
    llm_base_url: str = Field("https://api.openai.com/v1", alias="LLM_BASE_URL")
    llm_api_key: str | None = Field(default=None, alias="LLM_API_KEY")
    llm_model: str = Field("gpt-4o", alias="LLM_MODEL")
    llm_temperature: float = Field(0.1, alias="LLM_TEMPERATURE")
    llm_timeout_seconds: float = Field(60.0, alias="LLM_TIMEOUT_SECONDS")

    # Document storage (empty = in-memory store)
    documents_db_path: str = Field("", alias="DOCUMENTS_DB_PATH")

    # Background extraction
    extraction_max_workers: int = Field(4, alias="EXTRACTION_MAX_WORKERS")
    extraction_max_queue: int = Field(32, alias="EXTRACTION_MAX_QUEUE")
    extraction_task_history: int = Field(256, alias="EXTRACTION_TASK_HISTORY")  # Finished task handles kept for lookups

    # Ledger
    accounts_payable_account: str = Field("2400", alias="ACCOUNTS_PAYABLE_ACCOUNT")

    # Uploads
    web_upload_sender_email: str = Field("web-upload@reai.no", alias="WEB_UPLOAD_SENDER_EMAIL")
    default_tenant_slugs: str = Field("demo", alias="DEFAULT_TENANT_SLUGS")  # Comma-separated list

    # CORS allowed origins (comma-separated list for production deployment)
    cors_origins: str = Field("http://localhost:3000,http://127.0.0.1:3000", alias="CORS_ORIGINS")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

settings = Settings()
