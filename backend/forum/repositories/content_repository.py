"""
内容 Repository
提供 contents 表的增删改查，以及内容信封和各内容类型上的关系解析：
创建者、编辑者、评论、所属节点/分类、最近回复人、编辑权限
"""

import logging
from datetime import datetime
from typing import List, Optional, Union

from sqlalchemy import case, func, or_, update
from sqlmodel import Session, col, select

from forum.errors import NotFoundError
from forum.markup import render_markdown
from forum.models.base import Collection, utcnow
from forum.models.comment import Comment
from forum.models.content import (
    Article, ContentItem, ContentRecord, ContentType, Package, Site, Topic, compose
)
from forum.models.taxonomy import ArticleCategory, Node, PackageCategory, SiteCategory
from forum.models.user import User

from .base import BaseRepository
from .reference import ReferenceResolver

logger = logging.getLogger(__name__)

CategoryEntity = Union[SiteCategory, ArticleCategory, PackageCategory]


class ContentRepository(BaseRepository):
    """
    内容数据访问对象

    写操作都是单文档操作；跨文档的计数维护由 ForumService 编排
    """

    def __init__(self, session: Session):
        super().__init__(session)
        self.resolver = ReferenceResolver(session)

    # ==================== 创建 ====================

    def create_topic(
        self,
        title: str,
        markdown: str,
        created_by: str,
        node_id: str,
        created_at: Optional[datetime] = None
    ) -> Topic:
        """
        创建主题

        Args:
            title: 标题
            markdown: 正文 Markdown 源
            created_by: 创建者用户 ID
            node_id: 所属节点 ID
            created_at: 创建时间（可选，默认当前时间）

        Returns:
            创建的 Topic
        """
        record = self._new_record(ContentType.TOPIC, title, markdown, created_by, created_at)
        record.node_id = node_id
        return Topic.from_record(self._save(record))

    def create_article(
        self,
        title: str,
        markdown: str,
        created_by: str,
        category_id: str,
        original_source: Optional[str] = None,
        original_url: Optional[str] = None,
        created_at: Optional[datetime] = None
    ) -> Article:
        """
        创建文章

        Args:
            original_source: 转载来源名称（可选）
            original_url: 转载来源链接（可选）
        """
        record = self._new_record(ContentType.ARTICLE, title, markdown, created_by, created_at)
        record.category_id = category_id
        record.original_source = original_source
        record.original_url = original_url
        return Article.from_record(self._save(record))

    def create_site(
        self,
        title: str,
        markdown: str,
        created_by: str,
        url: str,
        category_id: str,
        created_at: Optional[datetime] = None
    ) -> Site:
        record = self._new_record(ContentType.SITE, title, markdown, created_by, created_at)
        record.url = url
        record.category_id = category_id
        return Site.from_record(self._save(record))

    def create_package(
        self,
        title: str,
        markdown: str,
        created_by: str,
        category_id: str,
        url: str,
        created_at: Optional[datetime] = None
    ) -> Package:
        record = self._new_record(ContentType.PACKAGE, title, markdown, created_by, created_at)
        record.category_id = category_id
        record.url = url
        return Package.from_record(self._save(record))

    def _new_record(
        self,
        kind: ContentType,
        title: str,
        markdown: str,
        created_by: str,
        created_at: Optional[datetime]
    ) -> ContentRecord:
        return ContentRecord(
            type=kind,
            title=title,
            markdown=markdown,
            html=render_markdown(markdown),
            created_by=created_by,
            created_at=created_at or utcnow()
        )

    # ==================== 查询 ====================

    def get(self, content_id: str) -> Optional[ContentItem]:
        """
        根据 ID 获取任意类型的内容

        Returns:
            具体内容视图，不存在则返回 None
        """
        return self.resolver.resolve_content(content_id)

    def get_topic(self, content_id: str) -> Optional[Topic]:
        return self.resolver.resolve_content(content_id, ContentType.TOPIC)

    def get_article(self, content_id: str) -> Optional[Article]:
        return self.resolver.resolve_content(content_id, ContentType.ARTICLE)

    def get_site(self, content_id: str) -> Optional[Site]:
        return self.resolver.resolve_content(content_id, ContentType.SITE)

    def get_package(self, content_id: str) -> Optional[Package]:
        return self.resolver.resolve_content(content_id, ContentType.PACKAGE)

    def list_by_kind(self, kind: ContentType, limit: Optional[int] = None) -> List[ContentItem]:
        """
        获取某种类型的全部内容（按创建时间倒序）

        Args:
            kind: 内容类型
            limit: 限制返回数量（可选）
        """
        statement = select(ContentRecord).where(
            ContentRecord.type == kind
        ).order_by(col(ContentRecord.created_at).desc(), col(ContentRecord.id).asc())

        if limit:
            statement = statement.limit(limit)

        return [compose(record) for record in self._all(statement)]

    def count_by_kind(self, kind: ContentType) -> int:
        statement = select(func.count()).select_from(ContentRecord).where(
            ContentRecord.type == kind
        )
        return self._one(statement)

    # ==================== 信封上的关系 ====================

    def creator(self, item: ContentItem) -> User:
        """
        内容的创建者

        Raises:
            NotFoundError: 创建者已不存在（不返回残缺的用户对象）
        """
        return self.resolver.require(item.content.creator_ref)

    def updater(self, item: ContentItem) -> Optional[User]:
        """
        内容的最后编辑者

        Returns:
            User 对象；从未被编辑过返回 None

        Raises:
            NotFoundError: 记录了编辑者但该用户已不存在
        """
        ref = item.content.updater_ref
        if ref is None:
            return None
        return self.resolver.require(ref)

    def comments(self, item: ContentItem, ordered: bool = False) -> List[Comment]:
        """
        内容下的全部评论

        默认按存储的自然顺序返回；需要时间顺序时传 ordered=True（按创建时间正序）

        Args:
            item: 内容
            ordered: 是否按创建时间排序
        """
        statement = select(Comment).where(Comment.content_id == item.id)
        if ordered:
            statement = statement.order_by(col(Comment.created_at).asc(), col(Comment.id).asc())
        return self._all(statement)

    def can_edit(self, item: ContentItem, username: str) -> bool:
        """
        是否有权编辑内容

        每次调用都重新查询用户：管理员或内容创建者可以编辑，其他人（包括不存在的用户）不可以
        """
        user = self.resolver.user_by_username(username)
        if user is None:
            return False

        if user.is_superuser:
            return True

        return item.content.created_by == user.id

    # ==================== 类型专有关系 ====================

    def node(self, topic: Topic) -> Optional[Node]:
        """
        主题所属节点

        Returns:
            Node 对象；节点已被删除时返回 None，主题本身仍可正常读取
        """
        node = self.resolver.resolve(topic.node_ref)
        if node is None:
            logger.warning("topic %s points at missing node %s", topic.id, topic.node_id)
        return node

    def latest_replier(self, topic: Topic) -> Optional[User]:
        """
        主题的最近回复人

        Returns:
            User 对象；尚无回复或引用已失效时返回 None
        """
        return self.resolver.resolve(topic.latest_replier_ref)

    def category(self, item: Union[Article, Site, Package]) -> Optional[CategoryEntity]:
        """
        文章/站点/软件包所属分类

        Returns:
            分类对象；分类已被删除时返回 None
        """
        category = self.resolver.resolve(item.category_ref)
        if category is None:
            logger.warning("content %s points at missing category %s", item.id, item.category_id)
        return category

    # ==================== 修改 ====================

    def edit(
        self,
        content_id: str,
        updated_by: str,
        title: Optional[str] = None,
        markdown: Optional[str] = None
    ) -> Optional[ContentItem]:
        """
        编辑内容

        修改 Markdown 源时重新渲染 html，并记录编辑者与编辑时间

        Args:
            content_id: 内容 ID
            updated_by: 编辑者用户 ID
            title: 新标题（可选）
            markdown: 新正文（可选）

        Returns:
            更新后的内容视图，不存在则返回 None
        """
        record = self._get(ContentRecord, content_id)
        if record is None:
            return None

        if title is not None:
            record.title = title
        if markdown is not None:
            record.markdown = markdown
            record.html = render_markdown(markdown)
        record.updated_by = updated_by
        record.updated_at = utcnow()
        return compose(self._save(record))

    def hit(self, content_id: str) -> bool:
        """
        点击数加一（字段级原子自增）

        Returns:
            内容存在返回 True
        """
        statement = update(ContentRecord).where(
            ContentRecord.id == content_id
        ).values(hits=col(ContentRecord.hits) + 1)
        return self._execute(statement) > 0

    def record_reply(
        self,
        content_id: str,
        replier_id: str,
        replied_at: datetime
    ) -> bool:
        """
        评论挂载到内容后的反规范化更新

        评论数加一；若内容是主题，同时更新最近回复人和回复时间。
        这是一次单文档更新，与评论插入不在同一事务。
        挂载顺序可能与评论创建顺序相反，最近回复只在 replied_at 不早于已记录的时间时才覆盖

        Returns:
            内容存在返回 True
        """
        record = self._get(ContentRecord, content_id)
        if record is None:
            return False

        values = {"comment_count": col(ContentRecord.comment_count) + 1}
        if record.type == ContentType.TOPIC:
            replied_column = col(ContentRecord.latest_replied_at)
            is_newer = or_(replied_column.is_(None), replied_column <= replied_at)
            values["latest_replier_id"] = case(
                (is_newer, replier_id), else_=col(ContentRecord.latest_replier_id)
            )
            values["latest_replied_at"] = case((is_newer, replied_at), else_=replied_column)

        statement = update(ContentRecord).where(
            ContentRecord.id == content_id
        ).values(**values).execution_options(synchronize_session=False)
        return self._execute(statement) > 0

    def adjust_comment_count(self, content_id: str, delta: int) -> bool:
        statement = update(ContentRecord).where(
            ContentRecord.id == content_id
        ).values(comment_count=col(ContentRecord.comment_count) + delta)
        return self._execute(statement) > 0

    def set_reply_state(
        self,
        content_id: str,
        comment_count: int,
        latest_replier_id: Optional[str] = None,
        latest_replied_at: Optional[datetime] = None
    ) -> bool:
        """
        直接写入评论相关的反规范化字段（用于重新计数）

        latest_replier_id 与 latest_replied_at 必须同时给出或同时为空
        """
        if (latest_replier_id is None) != (latest_replied_at is None):
            raise ValueError("latest replier and reply time must be set together")
        statement = update(ContentRecord).where(ContentRecord.id == content_id).values(
            comment_count=comment_count,
            latest_replier_id=latest_replier_id,
            latest_replied_at=latest_replied_at
        )
        return self._execute(statement) > 0

    def delete(self, content_id: str) -> Optional[ContentItem]:
        """
        删除内容（不级联删除评论）

        Returns:
            被删除的内容视图，不存在则返回 None
        """
        record = self._get(ContentRecord, content_id)
        if record is None:
            return None
        item = compose(record)
        self._remove(record)
        return item

    def require(self, content_id: str) -> ContentItem:
        item = self.get(content_id)
        if item is None:
            raise NotFoundError(Collection.CONTENTS.value, content_id)
        return item
