"""配置模块：负责加载和缓存基于环境变量的应用设置。"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# 探测项目根目录并加载环境文件，支持通过 ENV_FILE/ENVIRONMENT 定制优先级。
def _detect_base_dir() -> Path:
    """向上遍历目录树，寻找包含 `app` 目录的项目根路径。"""
    current = Path(__file__).resolve()
    for candidate in current.parents:
        if (candidate / "app").is_dir():
            return candidate
    return current.parent


BASE_DIR = _detect_base_dir()


def _as_bool(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _load_environment() -> None:
    env_file_override = os.getenv("ENV_FILE")
    if env_file_override:
        candidate = BASE_DIR / env_file_override
        if candidate.exists():
            load_dotenv(candidate, override=True, encoding="utf-8")
        return

    base_env = BASE_DIR / ".env"
    if base_env.exists():
        load_dotenv(base_env, override=False, encoding="utf-8")

    environment = os.getenv("ENVIRONMENT")
    if environment is None and _as_bool(os.getenv("DEBUG")):
        environment = "development"

    if environment:
        candidate_name = environment if environment.startswith(".env") else f".env.{environment}"
        candidate_path = BASE_DIR / candidate_name
        if candidate_path.exists():
            load_dotenv(candidate_path, override=True, encoding="utf-8")


_load_environment()


class Settings(BaseSettings):
    """
    封装应用运行所需的所有配置项，每个字段都可以通过环境变量重写。
    数据库保存文件元数据，对象存储（S3 或本地目录）保存文件字节。
    """

    project_name: str = Field(default="Filestore API", alias="PROJECT_NAME")
    api_v1_str: str = Field(default="/api/v1", alias="API_V1_STR")
    debug: bool = Field(default=False, alias="DEBUG")

    # 显式提供 DATABASE_URL 时优先使用（测试环境常用 SQLite）
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    database_host: str = Field(default="localhost", alias="DATABASE_HOST")
    database_port: int = Field(default=5432, alias="DATABASE_PORT")
    database_user: str = Field(default="postgres", alias="DATABASE_USER")
    database_password: str = Field(default="postgres", alias="DATABASE_PASSWORD")
    database_name: str = Field(default="filestore", alias="DATABASE_NAME")
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")

    # 对象存储："S3" 或 "LOCAL"
    storage_type: str = Field(default="S3", alias="STORAGE_TYPE")
    s3_bucket_name: Optional[str] = Field(default=None, alias="S3_BUCKET_NAME")
    s3_region: str = Field(default="us-east-1", alias="S3_REGION")
    s3_endpoint_url: Optional[str] = Field(default=None, alias="S3_ENDPOINT_URL")
    s3_access_key_id: Optional[str] = Field(default=None, alias="S3_ACCESS_KEY_ID")
    s3_secret_access_key: Optional[str] = Field(default=None, alias="S3_SECRET_ACCESS_KEY")
    s3_path_prefix: Optional[str] = Field(default=None, alias="S3_PATH_PREFIX")
    local_root_path: str = Field(default="storage", alias="LOCAL_ROOT_PATH")
    public_base_url: str = Field(default="http://127.0.0.1:8000", alias="PUBLIC_BASE_URL")
    signed_url_expire_seconds: int = Field(default=900, alias="SIGNED_URL_EXPIRE_SECONDS")

    # 本地存储签名直链使用的密钥
    signing_secret_key: str = Field(default="changeme", alias="SIGNING_SECRET_KEY")
    signing_algorithm: str = Field(default="HS256", alias="SIGNING_ALGORITHM")

    default_page_size: int = Field(default=20, alias="DEFAULT_PAGE_SIZE")
    max_page_size: int = Field(default=100, alias="MAX_PAGE_SIZE")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_dir: str = Field(default="log", alias="LOG_DIR")
    log_file_name: str = Field(default="app.log", alias="LOG_FILE_NAME")
    log_json: bool = Field(default=False, alias="LOG_JSON")
    app_port: int = Field(default=8000, alias="APP_PORT")
    timezone: str = Field(default="UTC", alias="TIMEZONE")

    model_config = SettingsConfigDict(extra="ignore")

    @property
    def sql_database_url(self) -> str:
        """返回数据库连接串；未显式配置时按字段拼接 PostgreSQL 连接串。"""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg2://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    def _resolve_path(self, raw: str) -> Path:
        path = Path(raw)
        if not path.is_absolute():
            path = BASE_DIR / path
        return path

    @property
    def log_directory(self) -> Path:
        """返回日志目录的绝对路径，支持相对路径配置。"""
        return self._resolve_path(self.log_dir)

    @property
    def log_file_path(self) -> Path:
        return self.log_directory / self.log_file_name

    @property
    def local_root_directory(self) -> Path:
        return self._resolve_path(self.local_root_path)

    @property
    def timezone_info(self) -> ZoneInfo:
        """返回当前配置对应的时区信息，无法解析时回退到 UTC。"""
        try:
            return ZoneInfo(self.timezone)
        except ZoneInfoNotFoundError:
            return ZoneInfo("UTC")


@lru_cache
def get_settings() -> Settings:
    """返回单例化的配置对象，避免重复解析环境变量造成性能浪费。"""
    return Settings()
