"""
Repository 基类
统一持有注入的数据库会话，并把存储层错误转换为领域错误：
连接类错误转换为 StoreUnavailableError，唯一约束冲突转换为 ConflictError
"""

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlmodel import Session, SQLModel

from forum.errors import ConflictError, StoreUnavailableError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=SQLModel)


class BaseRepository:
    """
    数据访问对象基类

    不持有任何进程内锁；每个方法都是一次（或几次）阻塞的存储往返，
    失败直接向上抛出，不在这里重试
    """

    def __init__(self, session: Session):
        """
        初始化 Repository

        Args:
            session: SQLModel 数据库会话
        """
        self.session = session

    @contextmanager
    def _store(self) -> Iterator[None]:
        """
        翻译存储层错误

        两种情况都先回滚，注入的会话之后仍可继续使用
        """
        try:
            yield
        except IntegrityError as exc:
            logger.warning("write conflict: %s", exc.orig)
            self.session.rollback()
            raise ConflictError(str(exc.orig)) from exc
        except (OperationalError, InterfaceError) as exc:
            logger.error("store unavailable: %s", exc)
            self.session.rollback()
            raise StoreUnavailableError(str(exc)) from exc

    def _get(self, model: Type[ModelT], identifier: Optional[str]) -> Optional[ModelT]:
        if not identifier:
            return None
        with self._store():
            return self.session.get(model, identifier)

    def _first(self, statement):
        with self._store():
            return self.session.exec(statement).first()

    def _all(self, statement) -> List:
        with self._store():
            return list(self.session.exec(statement).all())

    def _one(self, statement):
        with self._store():
            return self.session.exec(statement).one()

    def _execute(self, statement) -> int:
        """执行单条 UPDATE/DELETE 并提交，返回受影响行数"""
        with self._store():
            result = self.session.exec(statement)
            self.session.commit()
            return result.rowcount

    def _save(self, obj: ModelT) -> ModelT:
        """插入或整行更新一个文档并提交"""
        with self._store():
            self.session.add(obj)
            self.session.commit()
            self.session.refresh(obj)
            return obj

    def _remove(self, obj: SQLModel) -> None:
        with self._store():
            self.session.delete(obj)
            self.session.commit()
