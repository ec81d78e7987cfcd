"""
错误翻译单元测试
验证存储层连接错误被转换为 StoreUnavailableError、唯一约束冲突被转换为 ConflictError，且不在本层重试
"""

from unittest.mock import Mock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from forum.errors import (
    ConflictError, ForumError, NotFoundError, PermissionDeniedError, StoreUnavailableError
)
from forum.repositories import StatusRepository, TaxonomyRepository, UserRepository


def _broken_session():
    session = Mock()
    error = OperationalError("SELECT 1", {}, Exception("database is locked"))
    session.get.side_effect = error
    session.exec.side_effect = error
    return session


class TestStoreUnavailable:
    """测试存储不可用"""

    def test_read_raises_store_unavailable(self):
        """测试读取失败时抛出 StoreUnavailableError 并回滚"""
        session = _broken_session()
        repository = UserRepository(session)

        with pytest.raises(StoreUnavailableError) as exc_info:
            repository.get_by_id("abc")

        assert isinstance(exc_info.value.__cause__, OperationalError)
        session.rollback.assert_called_once()
        assert session.get.call_count == 1

    def test_write_raises_store_unavailable(self):
        """测试写入失败时抛出 StoreUnavailableError"""
        session = _broken_session()
        repository = StatusRepository(session)

        with pytest.raises(StoreUnavailableError):
            repository.increment_replies()

        session.commit.assert_not_called()

    def test_integrity_error_becomes_conflict(self):
        """测试唯一约束冲突被转换为 ConflictError 并回滚"""
        session = Mock()
        session.commit.side_effect = IntegrityError(
            "INSERT INTO nodes", {}, Exception("UNIQUE constraint failed: nodes.slug")
        )
        repository = TaxonomyRepository(session)

        with pytest.raises(ConflictError) as exc_info:
            repository.create_node("general", "General")

        assert isinstance(exc_info.value, ForumError)
        assert "nodes.slug" in str(exc_info.value)
        session.rollback.assert_called_once()
        session.refresh.assert_not_called()


class TestErrorMessages:
    """测试错误信息"""

    def test_not_found(self):
        error = NotFoundError("nodes", "abc")

        assert isinstance(error, ForumError)
        assert error.collection == "nodes"
        assert "abc" in str(error)

    def test_permission_denied(self):
        error = PermissionDeniedError("bob", "delete comment x")

        assert error.username == "bob"
        assert "bob" in str(error)
