from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Required: startup fails when either is missing
    database_url: str
    session_key: str

    # Sessions
    session_cookie_name: str = "session"
    session_cookie_secure: bool = False
    session_max_age: int = 30 * 24 * 3600

    # Passwords
    bcrypt_rounds: int = 12

    # Uploads (served under /uploads)
    upload_root: str = "uploads"
    max_upload_bytes: int = 10 * 1024 * 1024

    # Surface store error messages to clients (development only)
    expose_error_details: bool = False

    # Create tables at startup instead of running alembic
    auto_create_schema: bool = False

    log_level: str = "INFO"
