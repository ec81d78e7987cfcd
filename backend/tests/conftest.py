"""
Pytest 测试配置
提供内存数据库、Repository、服务实例以及常用测试数据
"""

import sys
from pathlib import Path
from typing import Generator

import pytest
from sqlmodel import Session, create_engine

# 添加项目根目录到 sys.path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from forum.db.init_db import create_tables
from forum.models import Node, Topic, User
from forum.repositories import (
    CommentRepository,
    ContentRepository,
    ReferenceResolver,
    StatusRepository,
    TaxonomyRepository,
    UserRepository
)
from forum.services import ForumService


# ==================== 数据库 Fixtures ====================

@pytest.fixture(scope="function")
def test_db_engine():
    """
    创建测试用的内存数据库引擎
    每个测试函数都会获得一个全新的数据库
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False}
    )

    # 创建所有表
    create_tables(engine)

    yield engine

    # 测试结束后自动清理（内存数据库自动销毁）


@pytest.fixture(scope="function")
def test_db_session(test_db_engine) -> Generator[Session, None, None]:
    """
    创建测试用的数据库会话
    """
    with Session(test_db_engine) as session:
        yield session


# ==================== Repository Fixtures ====================

@pytest.fixture(scope="function")
def resolver(test_db_session: Session) -> ReferenceResolver:
    return ReferenceResolver(test_db_session)


@pytest.fixture(scope="function")
def user_repository(test_db_session: Session) -> UserRepository:
    return UserRepository(test_db_session)


@pytest.fixture(scope="function")
def content_repository(test_db_session: Session) -> ContentRepository:
    return ContentRepository(test_db_session)


@pytest.fixture(scope="function")
def comment_repository(test_db_session: Session) -> CommentRepository:
    return CommentRepository(test_db_session)


@pytest.fixture(scope="function")
def taxonomy_repository(test_db_session: Session) -> TaxonomyRepository:
    return TaxonomyRepository(test_db_session)


@pytest.fixture(scope="function")
def status_repository(test_db_session: Session) -> StatusRepository:
    return StatusRepository(test_db_session)


@pytest.fixture(scope="function")
def forum_service(test_db_session: Session) -> ForumService:
    """
    创建 ForumService 实例
    全局状态单例在系统初始化时创建，这里先确保它存在
    """
    StatusRepository(test_db_session).ensure()
    return ForumService(test_db_session)


# ==================== 测试数据 Fixtures ====================

@pytest.fixture(scope="function")
def alice(forum_service: ForumService) -> User:
    """普通用户 alice"""
    return forum_service.register_user("alice", "alice-pass", email="alice@example.com", is_active=True)


@pytest.fixture(scope="function")
def bob(forum_service: ForumService) -> User:
    """普通用户 bob"""
    return forum_service.register_user("bob", "bob-pass", email="bob@example.com", is_active=True)


@pytest.fixture(scope="function")
def root(forum_service: ForumService) -> User:
    """管理员 root-superuser"""
    return forum_service.register_user(
        "root-superuser", "root-pass",
        email="root@example.com",
        is_superuser=True,
        is_active=True
    )


@pytest.fixture(scope="function")
def general_node(taxonomy_repository: TaxonomyRepository) -> Node:
    """节点 general"""
    return taxonomy_repository.create_node("general", "General", "综合讨论")


@pytest.fixture(scope="function")
def alice_topic(forum_service: ForumService, alice: User, general_node: Node) -> Topic:
    """alice 在 general 节点下发表的主题"""
    return forum_service.create_topic(
        created_by=alice.id,
        node_id=general_node.id,
        title="Hello gophers",
        markdown="第一次发帖，请多关照"
    )


# ==================== Pytest 配置 ====================

def pytest_configure(config):
    """
    Pytest 初始化配置
    """
    # 标记测试分类
    config.addinivalue_line(
        "markers", "unit: Unit tests"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests"
    )
