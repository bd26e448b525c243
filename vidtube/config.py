from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./vidtube.db"

    # JWT
    algorithm: str = "HS256"
    access_token_secret: str = "access-secret-change-in-production"
    access_token_expire_minutes: int = 15
    refresh_token_secret: str = "refresh-secret-change-in-production"
    refresh_token_expire_days: int = 10

    # Cookies carrying the tokens are always HttpOnly; Secure can be turned off for local http
    cookie_secure: bool = True

    # Frontend URL / extra origins for CORS (comma separated)
    frontend_url: str = "http://localhost:3000"
    cors_origins: str = ""

    # Multipart uploads land here before being pushed to remote storage
    upload_temp_dir: str = "./public/temp"

    # Remote media storage (Cloudinary)
    storage_cloud_name: str = ""
    storage_api_key: str = ""
    storage_api_secret: str = ""
    storage_upload_prefix: str = "https://api.cloudinary.com"
    storage_folder: str = ""
    storage_timeout_seconds: float = 600.0

    # Listing
    max_page_size: int = 100

    log_level: str = "INFO"

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
