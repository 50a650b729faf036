from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "Mutual Help API"
    debug: bool = False

    database_url: str = Field(..., validation_alias="DATABASE_URL")
    # create tables from the ORM metadata at startup (tests, local dev)
    create_schema_on_startup: bool = Field(False, validation_alias="CREATE_SCHEMA_ON_STARTUP")

    # bearer tokens
    jwt_secret: str = Field("CHANGE_ME", validation_alias="JWT_SECRET")
    jwt_algorithm: str = Field("HS256", validation_alias="JWT_ALGORITHM")
    jwt_exp_hours: int = Field(48, validation_alias="JWT_EXP_HOURS")
    login_token_limit: int = Field(2, validation_alias="LOGIN_TOKEN_LIMIT")
    reset_token_ttl_minutes: int = Field(60, validation_alias="RESET_TOKEN_TTL_MINUTES")

    # first administrator, created at startup only when both are set
    bootstrap_admin_email: str | None = Field(default=None, validation_alias="BOOTSTRAP_ADMIN_EMAIL")
    bootstrap_admin_password: str | None = Field(default=None, validation_alias="BOOTSTRAP_ADMIN_PASSWORD")

    # object storage
    # only for S3-compatible services other than AWS
    bucket_endpoint_url: str | None = Field(default=None, validation_alias="BUCKET_URL")
    bucket_image_path: str = Field("images", validation_alias="BUCKET_IMGPATH")
    bucket_name: str = Field("mutual-help", validation_alias="BUCKET_NAME")
    bucket_access_key: str | None = Field(default=None, validation_alias="BUCKET_ACCKEY")
    bucket_secret_key: str | None = Field(default=None, validation_alias="BUCKET_SECKEY")
    bucket_region: str = Field("eu-west-3", validation_alias="BUCKET_REGION")
    presigned_url_expiry_seconds: int = Field(3600, validation_alias="PRESIGNED_URL_EXPIRY_SECONDS")

    # transactional email
    smtp_host: str | None = Field(default=None, validation_alias="SMTP_HOST")
    smtp_port: int = Field(587, validation_alias="SMTP_PORT")
    smtp_email: str | None = Field(default=None, validation_alias="SMTP_EMAIL")
    smtp_password: str | None = Field(default=None, validation_alias="SMTP_PASSWORD")
    mail_sender_name: str = Field("EEGJ", validation_alias="MAIL_SENDER_NAME")
    reset_password_url: str = Field("https://eegj.fr/resetPassword", validation_alias="RESET_PASSWORD_URL")

    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")
    log_json: bool = Field(False, validation_alias="LOG_JSON")


@lru_cache
def get_settings() -> Settings:
    return Settings()
