"""
引用解析
给定类型化引用（集合 + 标识符），按主键点查对应实体；
所有跨实体的访问方法都建立在这里
"""

import logging
from typing import Dict, Optional, Type, Union

from sqlmodel import SQLModel, select

from forum.errors import NotFoundError
from forum.models.base import Collection, Ref
from forum.models.comment import Comment
from forum.models.content import ContentItem, ContentRecord, ContentType, compose
from forum.models.status import Status
from forum.models.taxonomy import ArticleCategory, Node, PackageCategory, SiteCategory
from forum.models.user import User

from .base import BaseRepository

logger = logging.getLogger(__name__)

COLLECTION_MODELS: Dict[Collection, Type[SQLModel]] = {
    Collection.USERS: User,
    Collection.NODES: Node,
    Collection.CONTENTS: ContentRecord,
    Collection.COMMENTS: Comment,
    Collection.SITE_CATEGORIES: SiteCategory,
    Collection.ARTICLE_CATEGORIES: ArticleCategory,
    Collection.PACKAGE_CATEGORIES: PackageCategory,
    Collection.STATUS: Status,
}

Entity = Union[SQLModel, ContentItem]


class ReferenceResolver(BaseRepository):
    """
    引用解析器
    缺失的引用返回 None，是否视为错误由调用方决定（require）
    """

    def resolve(self, ref: Optional[Ref]) -> Optional[Entity]:
        """
        解析引用

        contents 集合中的行会按类型标记组合成具体内容视图

        Args:
            ref: 类型化引用，None 表示没有引用

        Returns:
            实体对象，不存在则返回 None
        """
        if ref is None:
            return None
        entity = self._get(COLLECTION_MODELS[ref.collection], ref.id)
        if entity is None:
            logger.debug("dangling reference %s", ref)
            return None
        if isinstance(entity, ContentRecord):
            return compose(entity)
        return entity

    def require(self, ref: Ref) -> Entity:
        """
        解析引用，不存在时抛出 NotFoundError

        Raises:
            NotFoundError: 引用的实体不存在
        """
        entity = self.resolve(ref)
        if entity is None:
            raise NotFoundError(ref.collection.value, ref.id)
        return entity

    def resolve_content(
        self,
        content_id: Optional[str],
        kind: Optional[ContentType] = None
    ) -> Optional[ContentItem]:
        """
        按标识符解析内容，可限定类型

        内容存在但类型不符时同样返回 None，而不是返回类型错误的结果

        Args:
            content_id: 内容 ID
            kind: 期望的内容类型（可选）

        Returns:
            具体内容视图，不存在或类型不符则返回 None
        """
        if not content_id:
            return None
        statement = select(ContentRecord).where(ContentRecord.id == content_id)
        if kind is not None:
            statement = statement.where(ContentRecord.type == kind)
        record = self._first(statement)
        return compose(record) if record else None

    def user_by_username(self, username: str) -> Optional[User]:
        """按用户名查找用户（权限判断每次都重新查询，不缓存）"""
        statement = select(User).where(User.username == username)
        return self._first(statement)
