"""
File: app/core/config.py
Description: 全局应用配置管理（使用 pydantic-settings）

所有配置值通过 .env 文件加载。
本模块负责：
1. 校验环境变量类型
2. 组装数据库 DSN（未显式提供时使用 postgresql+asyncpg 协议）
3. 定义 Redis、会话令牌、验证码与限流参数
4. 按客户端类型打包 Google / 微信 OAuth 凭证 (不可变配置对象，构造时注入)
5. 运行时强制校验必填项，确保应用在配置缺失时快速失败

Created: 2026-03-02
"""

from dataclasses import dataclass
from typing import Literal

from pydantic import AnyHttpUrl, model_validator
from pydantic_core import MultiHostUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True, slots=True)
class GoogleClientConfig:
    """单个 Google OAuth 客户端 (ios / web) 的凭证与回调白名单"""

    client_id: str
    client_secret: str
    redirect_urls: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class WechatClientConfig:
    """单个微信开放平台应用 (web / app) 的凭证"""

    appid: str
    secret: str


class Settings(BaseSettings):
    """全局配置对象（唯一真实来源）"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
        case_sensitive=True,
    )

    # --------------------------------------------------------------------------
    # 1. General (通用)
    # --------------------------------------------------------------------------
    PROJECT_NAME: str = "Identity Hub"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: Literal["local", "dev", "prod"] = "local"
    DEBUG: bool = False

    # 用于 JWT 签名 (HS256 共享密钥)
    SECRET_KEY: str | None = None

    BACKEND_CORS_ORIGINS: list[AnyHttpUrl] = []

    # --------------------------------------------------------------------------
    # 2. Database (PostgreSQL)
    # --------------------------------------------------------------------------
    POSTGRES_SERVER: str | None = None
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str | None = None
    POSTGRES_PASSWORD: str | None = None
    POSTGRES_DB: str | None = None

    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_PRE_PING: bool = True
    DB_POOL_TIMEOUT: int = 30  # 秒
    DB_POOL_RECYCLE: int = 1800  # 秒

    # 完整 DSN 覆盖（可选，测试环境使用 sqlite+aiosqlite）
    SQLALCHEMY_DATABASE_URI: str | None = None

    # --------------------------------------------------------------------------
    # 3. Logging (Loguru)
    # --------------------------------------------------------------------------
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_JSON_FORMAT: bool = False
    LOG_FILE_ENABLED: bool = False
    LOG_DIR: str = "logs"
    LOG_ROTATION: str = "1 hour"
    LOG_RETENTION: str = "7 days"
    LOG_COMPRESSION: str = "zip"
    LOG_DIAGNOSE: bool = True  # 生产环境建议 False

    # --------------------------------------------------------------------------
    # 4. Redis (验证码 / 限流计数 / Refresh Token 登记)
    # --------------------------------------------------------------------------
    REDIS_URL: str = "redis://localhost:6379/0"

    # --------------------------------------------------------------------------
    # 5. Session Tokens (JWT) & Password Hashing
    # --------------------------------------------------------------------------
    # Access Token 有效期 (分钟)
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Refresh Token 有效期 (天)，与 Access Token 独立配置
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    ALGORITHM: str = "HS256"

    # bcrypt cost factor (生产环境 10-12)
    PASSWORD_HASH_ROUNDS: int = 12

    # --------------------------------------------------------------------------
    # 6. Google OAuth2 (Authorization Code + PKCE)
    # --------------------------------------------------------------------------
    GOOGLE_IOS_CLIENT_ID: str = ""
    GOOGLE_IOS_CLIENT_SECRET: str = ""
    GOOGLE_IOS_REDIRECT_URLS: list[str] = []

    GOOGLE_WEB_CLIENT_ID: str = ""
    GOOGLE_WEB_CLIENT_SECRET: str = ""
    GOOGLE_WEB_REDIRECT_URLS: list[str] = []

    GOOGLE_TOKEN_URL: str = "https://oauth2.googleapis.com/token"
    GOOGLE_USERINFO_URL: str = "https://www.googleapis.com/oauth2/v2/userinfo"

    # --------------------------------------------------------------------------
    # 7. WeChat OAuth (开放平台 网站应用 / 移动应用)
    # --------------------------------------------------------------------------
    WECHAT_WEB_APPID: str = ""
    WECHAT_WEB_SECRET: str = ""
    WECHAT_APP_APPID: str = ""
    WECHAT_APP_SECRET: str = ""

    WECHAT_OAUTH_TOKEN_URL: str = "https://api.weixin.qq.com/sns/oauth2/access_token"

    # 第三方接口调用超时 (秒)
    OAUTH_HTTP_TIMEOUT: float = 10.0

    # --------------------------------------------------------------------------
    # 8. Ephemeral Codes & Rate Limits (验证码与频率限制)
    # --------------------------------------------------------------------------
    EMAIL_VERIFICATION_CODE_TTL_MINUTES: int = 10
    PASSWORD_RESET_TOKEN_TTL_MINUTES: int = 30

    EMAIL_VERIFICATION_MAX_REQUESTS: int = 3
    EMAIL_VERIFICATION_WINDOW_MINUTES: int = 10
    PASSWORD_RESET_MAX_REQUESTS: int = 2
    PASSWORD_RESET_WINDOW_MINUTES: int = 15

    # --------------------------------------------------------------------------
    # 9. Email (邮件投递)
    # --------------------------------------------------------------------------
    EMAIL_PROVIDER: Literal["log", "smtp"] = "log"
    EMAIL_FROM: str = "no-reply@example.com"
    EMAIL_FROM_NAME: str = "Identity Hub"
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_USE_TLS: bool = True

    DEFAULT_LOCALE: str = "en"
    SUPPORTED_LOCALES: list[str] = ["en", "zh", "de"]

    # --------------------------------------------------------------------------
    # Properties (便捷属性)
    # --------------------------------------------------------------------------
    @property
    def is_production(self) -> bool:
        """是否为生产环境"""
        return self.ENVIRONMENT == "prod"

    @property
    def is_debug(self) -> bool:
        """是否启用调试模式（仅在非生产环境有效）"""
        return self.DEBUG and not self.is_production

    @property
    def is_sqlite(self) -> bool:
        return str(self.SQLALCHEMY_DATABASE_URI).startswith("sqlite")

    def google_clients(self) -> dict[str, GoogleClientConfig]:
        """按 client_type 组装 Google 客户端配置"""
        return {
            "ios": GoogleClientConfig(
                client_id=self.GOOGLE_IOS_CLIENT_ID,
                client_secret=self.GOOGLE_IOS_CLIENT_SECRET,
                redirect_urls=tuple(self.GOOGLE_IOS_REDIRECT_URLS),
            ),
            "web": GoogleClientConfig(
                client_id=self.GOOGLE_WEB_CLIENT_ID,
                client_secret=self.GOOGLE_WEB_CLIENT_SECRET,
                redirect_urls=tuple(self.GOOGLE_WEB_REDIRECT_URLS),
            ),
        }

    def wechat_clients(self) -> dict[str, WechatClientConfig]:
        """按 client_type 组装微信应用配置"""
        return {
            "web": WechatClientConfig(
                appid=self.WECHAT_WEB_APPID, secret=self.WECHAT_WEB_SECRET
            ),
            "app": WechatClientConfig(
                appid=self.WECHAT_APP_APPID, secret=self.WECHAT_APP_SECRET
            ),
        }

    # --------------------------------------------------------------------------
    # Validators
    # --------------------------------------------------------------------------
    @model_validator(mode="after")
    def _validate_and_build_db_uri(self) -> "Settings":
        """验证必填项并构建数据库连接串。"""
        # 1. 校验 SECRET_KEY
        if not self.SECRET_KEY:
            raise ValueError("SECRET_KEY 必须在 .env 中设置")

        if self.ENVIRONMENT == "prod" and len(self.SECRET_KEY) < 32:
            raise ValueError("生产环境 SECRET_KEY 长度必须 >= 32 字符")

        if not 4 <= self.PASSWORD_HASH_ROUNDS <= 31:
            raise ValueError("PASSWORD_HASH_ROUNDS 必须在 4-31 之间")

        if self.DEFAULT_LOCALE not in self.SUPPORTED_LOCALES:
            raise ValueError("DEFAULT_LOCALE 必须包含在 SUPPORTED_LOCALES 中")

        # 2. 如果 env 直接提供了 DSN，则优先使用
        if self.SQLALCHEMY_DATABASE_URI:
            return self

        # 3. 否则检查 POSTGRES_* 字段是否齐全
        missing_fields = [
            field
            for field in (
                "POSTGRES_SERVER",
                "POSTGRES_USER",
                "POSTGRES_PASSWORD",
                "POSTGRES_DB",
            )
            if not getattr(self, field)
        ]
        if missing_fields:
            raise ValueError(
                f"缺少数据库环境变量，无法构建 DSN: {', '.join(missing_fields)}"
            )

        # 4. 自动组装 DSN
        self.SQLALCHEMY_DATABASE_URI = str(
            MultiHostUrl.build(
                scheme="postgresql+asyncpg",
                username=self.POSTGRES_USER,  # type: ignore[arg-type]
                password=self.POSTGRES_PASSWORD,  # type: ignore[arg-type]
                host=self.POSTGRES_SERVER,  # type: ignore[arg-type]
                port=self.POSTGRES_PORT,
                path=self.POSTGRES_DB,  # type: ignore[arg-type]
            )
        )

        return self


# 单例配置对象
settings = Settings()
