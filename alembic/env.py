"""
File: alembic/env.py
Description: Alembic 迁移环境配置 - 同步版本

策略：
- 迁移 (Migration): 使用 psycopg (Sync) -> 稳定，无 EventLoop 问题
- 运行 (Runtime): 使用 asyncpg (Async) -> 高性能

Created: 2026-03-02
"""

from logging.config import fileConfig
from urllib.parse import quote_plus

from sqlalchemy import create_engine, pool

from alembic import context  # type: ignore
from app.core.config import settings
from app.db.models import Base

# Alembic Config 对象
config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def build_sync_uri() -> str:
    """
    构建同步数据库 URL。
    显式提供 SQLALCHEMY_DATABASE_URI 时直接替换驱动；
    否则从 POSTGRES_* 组件构建，密码做 URL 编码 (防止 '@' 等字符破坏连接串)。
    """
    if settings.POSTGRES_SERVER and settings.POSTGRES_USER:
        encoded_password = quote_plus(settings.POSTGRES_PASSWORD or "")
        return (
            f"postgresql+psycopg://{settings.POSTGRES_USER}:{encoded_password}"
            f"@{settings.POSTGRES_SERVER}:{settings.POSTGRES_PORT}/{settings.POSTGRES_DB}"
        )

    async_uri = str(settings.SQLALCHEMY_DATABASE_URI)
    return async_uri.replace("postgresql+asyncpg", "postgresql+psycopg").replace(
        "sqlite+aiosqlite", "sqlite"
    )


# configparser 需要转义 % 插值符号
config.set_main_option("sqlalchemy.url", build_sync_uri().replace("%", "%%"))

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """离线模式迁移：生成 SQL 脚本而不实际连接数据库"""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """在线模式迁移：连接数据库并执行迁移"""
    connectable = create_engine(
        config.get_main_option("sqlalchemy.url") or "",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            compare_server_default=True,
        )

        with context.begin_transaction():
            context.run_migrations()

    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
