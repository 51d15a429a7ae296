from functools import lru_cache

from pydantic_settings import BaseSettings
from pydantic import Field


class EnvSettings(BaseSettings):
    secret_key: str = Field(..., alias="APP_SECRET_KEY")
    cookie_secure: bool = Field(False, alias="APP_COOKIE_SECURE")
    session_cookie_name: str = Field("directory_api_session", alias="SESSION_COOKIE_NAME")
    session_max_age_seconds: int = Field(7200, alias="SESSION_MAX_AGE_SECONDS")

    ldap_url: str = Field("ldap://localhost:389", alias="LDAP_URL")
    ldap_base_dn: str = Field(..., alias="LDAP_BASE_DN")
    ldap_starttls: bool = Field(False, alias="LDAP_STARTTLS")
    ldap_tls_validate: bool = Field(False, alias="LDAP_TLS_VALIDATE")
    ldap_ca_cert_file: str = Field("", alias="LDAP_CA_CERT_FILE")
    ldap_connect_timeout: float = Field(5.0, alias="LDAP_CONNECT_TIMEOUT")
    ldap_receive_timeout: float = Field(10.0, alias="LDAP_RECEIVE_TIMEOUT")
    ldap_operation_timeout: float = Field(15.0, alias="LDAP_OPERATION_TIMEOUT")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_dir: str = Field("data/logs", alias="LOG_DIR")
    log_retention_days: int = Field(30, alias="LOG_RETENTION_DAYS")

    listen_host: str = Field("0.0.0.0", alias="LISTEN_HOST")
    listen_port: int = Field(8080, alias="LISTEN_PORT")

    class Config:
        populate_by_name = True


@lru_cache(maxsize=1)
def get_env() -> EnvSettings:
    return EnvSettings()
