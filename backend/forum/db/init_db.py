"""
数据库初始化脚本
负责读取连接配置、创建表结构、全局状态单例和可选的初始管理员
"""

import logging
import os
from pathlib import Path
from typing import Optional

from sqlmodel import SQLModel, Session, create_engine

# 导入所有表模型，确保它们注册到 SQLModel.metadata
from forum.models import (  # noqa: F401
    ArticleCategory, Comment, ContentRecord, Node, PackageCategory, SiteCategory, Status, User
)
from forum.repositories.status_repository import StatusRepository
from forum.repositories.user_repository import UserRepository
from forum.services.forum_service import ForumService

logger = logging.getLogger(__name__)


def get_database_url() -> str:
    """
    获取数据库连接 URL
    优先使用 DATABASE_URL，其次 DATABASE_PATH 指定的 SQLite 文件，否则使用默认的 SQLite 文件
    """
    database_url = os.environ.get("DATABASE_URL")
    if database_url:
        return database_url

    db_path = os.environ.get("DATABASE_PATH", "forum.db")
    # 确保路径是绝对路径
    if not os.path.isabs(db_path):
        # 从项目根目录解析
        project_root = Path(__file__).parent.parent.parent
        db_path = str(project_root / db_path)
    return f"sqlite:///{db_path}"


def get_engine():
    """
    创建并返回数据库引擎

    引擎是长生命周期的共享对象，每个工作单元各自打开 Session
    """
    database_url = get_database_url()
    echo = os.environ.get("SQL_ECHO", "").lower() in ("1", "true", "yes")

    connect_args = {}
    if database_url.startswith("sqlite"):
        # SQLite 特有配置
        connect_args["check_same_thread"] = False

    return create_engine(database_url, echo=echo, connect_args=connect_args)


def create_tables(engine) -> None:
    """
    创建所有数据库表
    SQLModel 会自动根据模型创建表结构
    """
    SQLModel.metadata.create_all(engine)
    logger.info("database tables created at %s", engine.url)


def create_default_superuser(session: Session) -> Optional[User]:
    """
    根据环境变量创建初始管理员

    需要 FORUM_ADMIN_USERNAME 与 FORUM_ADMIN_PASSWORD，缺少任一项则跳过；
    用户已存在时直接返回现有用户

    Returns:
        管理员 User 对象，未配置则返回 None
    """
    username = os.environ.get("FORUM_ADMIN_USERNAME")
    password = os.environ.get("FORUM_ADMIN_PASSWORD")
    if not username or not password:
        return None

    users = UserRepository(session)
    existing = users.get_by_username(username)
    if existing:
        logger.info("superuser '%s' already exists", username)
        return existing

    admin = ForumService(session).register_user(
        username=username,
        password=password,
        email=os.environ.get("FORUM_ADMIN_EMAIL", ""),
        is_superuser=True,
        is_active=True
    )
    logger.info("created superuser '%s'", admin.username)
    return admin


def create_default_data(session: Session) -> None:
    """
    创建所有默认数据
    包括全局状态单例和（可选的）初始管理员
    """
    StatusRepository(session).ensure()
    create_default_superuser(session)


def init_db() -> None:
    """
    完整的数据库初始化流程
    1. 创建数据库引擎
    2. 创建所有表结构
    3. 创建默认数据
    """
    engine = get_engine()
    create_tables(engine)

    with Session(engine) as session:
        create_default_data(session)

    logger.info("database initialisation completed")


if __name__ == "__main__":
    # 直接运行此脚本时，执行数据库初始化
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    init_db()
