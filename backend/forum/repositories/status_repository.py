"""
全局状态 Repository
维护单例 Status 行：用户/主题/回复总数与用户序号分配游标
"""

import logging
from typing import Optional

from sqlalchemy import func, update
from sqlmodel import col, select

from forum.errors import ConflictError, NotFoundError
from forum.models.base import Collection
from forum.models.comment import Comment
from forum.models.content import ContentRecord, ContentType
from forum.models.status import STATUS_ID, Status
from forum.models.user import User

from .base import BaseRepository

logger = logging.getLogger(__name__)


class StatusRepository(BaseRepository):
    """
    全局状态数据访问对象

    自增都是单条 UPDATE x = x + delta，并发自增不会丢失；
    但它们与触发它们的实体写入不在同一事务，崩溃后应以 recount() 的结果为准
    """

    def _find(self) -> Optional[Status]:
        return self._get(Status, STATUS_ID)

    def get(self) -> Status:
        """
        获取全局状态

        Raises:
            NotFoundError: 系统尚未初始化
        """
        status = self._find()
        if status is None:
            raise NotFoundError(Collection.STATUS.value, None)
        return status

    def ensure(self) -> Status:
        """
        确保全局状态存在（系统初始化时调用一次）

        Returns:
            已存在的或新创建的 Status 对象
        """
        status = self._find()
        if status:
            return status

        try:
            status = self._save(Status())
        except ConflictError:
            # 另一个进程已先完成初始化
            return self._get(Status, STATUS_ID)
        logger.info("initialised status record %s", status.id)
        return status

    def _increment(self, field: str, delta: int) -> None:
        column = col(getattr(Status, field))
        statement = update(Status).where(Status.id == STATUS_ID).values({field: column + delta})
        if self._execute(statement) == 0:
            raise NotFoundError(Collection.STATUS.value, None)

    def increment_users(self, delta: int = 1) -> None:
        self._increment("user_count", delta)

    def increment_topics(self, delta: int = 1) -> None:
        self._increment("topic_count", delta)

    def increment_replies(self, delta: int = 1) -> None:
        self._increment("reply_count", delta)

    def allocate_user_index(self) -> int:
        """
        分配下一个用户序号

        先原子地推进游标，再读回新值。并发注册时两次读回之间可能交错而读到同一个值，
        序号只用于展示

        Returns:
            分配到的序号（从 1 开始）
        """
        self._increment("user_index", 1)
        return self.get().user_index

    def recount(self) -> Status:
        """
        按全量枚举重新计算所有计数（幂等）

        Returns:
            更新后的 Status 对象
        """
        status = self.ensure()

        user_count = self._one(select(func.count()).select_from(User))
        topic_count = self._one(
            select(func.count()).select_from(ContentRecord).where(ContentRecord.type == ContentType.TOPIC)
        )
        reply_count = self._one(select(func.count()).select_from(Comment))
        max_index = self._one(select(func.coalesce(func.max(User.index), 0)))

        drift = (
            status.user_count != user_count
            or status.topic_count != topic_count
            or status.reply_count != reply_count
            or status.user_index < max_index
        )
        if drift:
            logger.warning(
                "status drifted: users %s->%s topics %s->%s replies %s->%s",
                status.user_count, user_count,
                status.topic_count, topic_count,
                status.reply_count, reply_count
            )

        status.user_count = user_count
        status.topic_count = topic_count
        status.reply_count = reply_count
        status.user_index = max(status.user_index, max_index)
        return self._save(status)
