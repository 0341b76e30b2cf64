"""应用运行配置。"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """接口服务共享配置。"""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="AE_", extra="ignore")

    app_name: str = Field(default="API Envelope", description="应用名称。")
    app_env: str = Field(default="dev", description="运行环境标识。")
    app_debug: bool = Field(default=False, description="是否输出调试级异常诊断信息。")
    api_prefix: str = Field(default="/api", description="统一接口前缀。")
    log_level: str = Field(default="INFO", description="日志级别。")
    database_url: str = Field(default="sqlite+pysqlite:///./api_envelope.db", description="数据库连接地址。")
    db_auto_create: bool = Field(default=True, description="启动时是否自动建表。")

    collection_envelope: str | None = Field(default="items", description="集合序列化时的列表键名，为空则直接返回列表。")
    meta_envelope: str = Field(default="_meta", description="集合序列化时的分页元信息键名。")
    preserve_keys: bool = Field(default=False, description="集合序列化时是否保留原始键。")
    fields_param: str = Field(default="fields", description="字段筛选查询参数名。")
    expand_param: str = Field(default="expand", description="扩展字段查询参数名。")

    page_size_default: int = Field(default=20, ge=1, description="默认分页大小。")
    page_size_min: int = Field(default=1, ge=1, description="分页大小下限。")
    page_size_max: int = Field(default=50, ge=1, description="分页大小上限。")

    enable_bearer_auth: bool = Field(default=False, description="控制器默认是否使用 Bearer 令牌认证。")
    auth_jwt_algorithms: str = Field(default="HS256", description="令牌签名算法列表，逗号分隔。")
    auth_jwt_issuer: str | None = Field(default=None, description="期望的签发方。")
    auth_jwt_audience: str | None = Field(default=None, description="期望的受众。")
    auth_jwt_secret: str = Field(default="change-me-in-prod", description="令牌对称密钥。")
    auth_jwt_leeway_seconds: int = Field(default=30, description="令牌校验时钟容错秒数。")
    auth_access_token_ttl_seconds: int = Field(default=7200, description="本地登录签发的访问令牌有效期（秒）。")
    auth_local_issuer: str = Field(default="local", description="本地登录签发时写入的 provider。")
    auth_password_hash_iterations: int = Field(default=390000, description="PBKDF2 密码哈希迭代次数。")

    session_secret_key: str = Field(default="change-me-in-prod", description="会话 Cookie 签名密钥。")
    session_cookie: str = Field(default="ae_session", description="会话 Cookie 名称。")
    session_max_age_seconds: int = Field(default=14 * 24 * 3600, description="会话有效期（秒）。")
    session_https_only: bool = Field(default=False, description="会话 Cookie 是否仅限 HTTPS。")

    rate_limit_enabled: bool = Field(default=True, description="是否启用接口限流。")
    rate_limit_default: str = Field(default="120/minute", description="默认限流规则。")
    rate_limit_storage_uri: str = Field(default="memory://", description="限流计数存储地址。")

    @field_validator("auth_jwt_algorithms")
    @classmethod
    def normalize_algorithms(cls, value: str) -> str:
        """规范化算法列表并确保至少配置一项。"""
        items = [item.strip() for item in value.split(",") if item.strip()]
        if not items:
            raise ValueError("auth_jwt_algorithms must include at least one algorithm")
        return ",".join(items)

    @field_validator("collection_envelope")
    @classmethod
    def normalize_collection_envelope(cls, value: str | None) -> str | None:
        """空字符串视为未配置。"""
        if value is None or not value.strip():
            return None
        return value.strip()

    @property
    def auth_algorithms(self) -> list[str]:
        """返回规范化后的算法数组。"""
        return [item.strip() for item in self.auth_jwt_algorithms.split(",") if item.strip()]

    @property
    def page_size_limit(self) -> tuple[int, int]:
        """返回分页大小上下限。"""
        return self.page_size_min, max(self.page_size_min, self.page_size_max)


@lru_cache
def get_settings() -> Settings:
    """返回缓存后的配置单例。"""
    return Settings()
