"""
数据库初始化单元测试
验证数据库表的创建、全局状态单例和初始管理员的生成
"""

import os
from unittest.mock import patch

from sqlmodel import Session, create_engine, select

from forum.db.init_db import (
    create_default_data, create_default_superuser, create_tables, get_database_url, init_db
)
from forum.models import Status, User

ADMIN_ENV = {
    "FORUM_ADMIN_USERNAME": "admin",
    "FORUM_ADMIN_PASSWORD": "admin-pass",
    "FORUM_ADMIN_EMAIL": "admin@example.com",
}


def _memory_engine():
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
    create_tables(engine)
    return engine


class TestDatabaseInit:
    """测试数据库初始化"""

    def test_create_tables(self):
        """测试创建所有表"""
        engine = _memory_engine()

        # 验证表已创建（尝试查询应该不会报错）
        with Session(engine) as session:
            result = session.exec(select(User)).all()
            assert isinstance(result, list)

    def test_database_url_from_env(self):
        """测试 DATABASE_URL 优先于 DATABASE_PATH"""
        with patch.dict(os.environ, {"DATABASE_URL": "sqlite:///tmp/x.db", "DATABASE_PATH": "y.db"}):
            assert get_database_url() == "sqlite:///tmp/x.db"

        with patch.dict(os.environ, {"DATABASE_PATH": "/data/forum.db"}):
            os.environ.pop("DATABASE_URL", None)
            assert get_database_url() == "sqlite:////data/forum.db"

    def test_create_default_superuser_skipped_without_env(self):
        """测试未配置管理员时跳过"""
        engine = _memory_engine()

        with patch.dict(os.environ, {}, clear=True):
            with Session(engine) as session:
                assert create_default_superuser(session) is None

    def test_create_default_data(self):
        """测试创建默认数据：全局状态 + 管理员，重复调用不重复创建"""
        engine = _memory_engine()

        with patch.dict(os.environ, ADMIN_ENV):
            with Session(engine) as session:
                create_default_data(session)
                create_default_data(session)

                statuses = session.exec(select(Status)).all()
                admins = session.exec(select(User).where(User.username == "admin")).all()

                assert len(statuses) == 1
                assert len(admins) == 1
                assert admins[0].is_superuser is True
                assert admins[0].check_password("admin-pass")
                assert admins[0].index == 1
                assert statuses[0].user_count == 1

    def test_init_db_complete_flow(self):
        """测试完整的初始化流程"""
        engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})

        with patch("forum.db.init_db.get_engine", return_value=engine):
            with patch.dict(os.environ, ADMIN_ENV):
                init_db()

        with Session(engine) as session:
            assert session.exec(select(Status)).first() is not None
            assert session.exec(select(User).where(User.username == "admin")).first() is not None
