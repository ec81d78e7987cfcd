"""
社区写操作服务层

封装跨集合的写操作编排，包括：
1. 注册用户：分配序号、写入用户、推进用户总数
2. 发布内容：写入内容、推进节点/分类计数与全局主题数
3. 发表评论：写入评论，再把评论挂载到内容（评论数、最近回复人）
4. 删除与重新计数：按全量枚举修复反规范化字段

每一步都是独立提交的单文档写入，没有跨文档事务。
评论插入成功而挂载更新尚未完成（或失败）的窗口是可接受的，
之后的 reconcile_content()/reconcile() 会把计数修正回来
"""

import logging
from typing import Optional

from sqlmodel import Session

from forum.errors import NotFoundError, PermissionDeniedError
from forum.models.base import Collection
from forum.models.comment import Comment
from forum.models.content import (
    Article, ContentItem, ContentType, Package, Site, Topic
)
from forum.models.status import Status
from forum.models.user import User
from forum.repositories.comment_repository import CommentRepository
from forum.repositories.content_repository import ContentRepository
from forum.repositories.status_repository import StatusRepository
from forum.repositories.taxonomy_repository import TaxonomyRepository
from forum.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


class ForumService:
    """
    社区服务类

    数据库会话通过构造函数注入，服务内部不持有全局连接

    使用示例：
        with Session(get_engine()) as session:
            service = ForumService(session)
            comment = service.post_comment(topic.id, bob.id, "同意楼上")
    """

    def __init__(self, session: Session):
        """
        初始化服务

        Args:
            session: SQLModel 数据库会话
        """
        self.session = session
        self.users = UserRepository(session)
        self.contents = ContentRepository(session)
        self.comments = CommentRepository(session)
        self.taxonomy = TaxonomyRepository(session)
        self.status = StatusRepository(session)

    # ==================== 用户 ====================

    def register_user(
        self,
        username: str,
        password: str,
        email: str = "",
        is_superuser: bool = False,
        is_active: bool = False,
        **profile: str
    ) -> User:
        """
        注册用户

        Args:
            username: 用户名
            password: 明文密码
            email: 邮箱
            is_superuser: 是否为管理员
            is_active: 是否已激活
            **profile: 其他资料字段

        Returns:
            创建的 User 对象

        Raises:
            ValueError: 用户名已被占用
        """
        if self.users.get_by_username(username):
            raise ValueError(f"username '{username}' is already taken")

        index = self.status.allocate_user_index()
        user = self.users.create(
            username=username,
            password=password,
            email=email,
            index=index,
            is_superuser=is_superuser,
            is_active=is_active,
            **profile
        )
        self.status.increment_users()
        logger.info("registered user %s (#%s)", user.username, user.index)
        return user

    # ==================== 内容发布 ====================

    def create_topic(self, created_by: str, node_id: str, title: str, markdown: str) -> Topic:
        """
        发布主题

        Raises:
            NotFoundError: 节点或创建者不存在
        """
        self._require_user(created_by)
        if self.taxonomy.get_node(node_id) is None:
            raise NotFoundError(Collection.NODES.value, node_id)

        topic = self.contents.create_topic(title, markdown, created_by, node_id)
        self.taxonomy.adjust_topic_count(node_id, 1)
        self.status.increment_topics()
        return topic

    def create_article(
        self,
        created_by: str,
        category_id: str,
        title: str,
        markdown: str,
        original_source: Optional[str] = None,
        original_url: Optional[str] = None
    ) -> Article:
        """
        发布文章

        Raises:
            NotFoundError: 文章分类或创建者不存在
        """
        self._require_user(created_by)
        if self.taxonomy.get_article_category(category_id) is None:
            raise NotFoundError(Collection.ARTICLE_CATEGORIES.value, category_id)

        return self.contents.create_article(
            title, markdown, created_by, category_id,
            original_source=original_source,
            original_url=original_url
        )

    def create_site(
        self,
        created_by: str,
        category_id: str,
        title: str,
        url: str,
        markdown: str = ""
    ) -> Site:
        """
        收录站点

        Raises:
            NotFoundError: 站点分类或创建者不存在
        """
        self._require_user(created_by)
        if self.taxonomy.get_site_category(category_id) is None:
            raise NotFoundError(Collection.SITE_CATEGORIES.value, category_id)

        return self.contents.create_site(title, markdown, created_by, url, category_id)

    def create_package(
        self,
        created_by: str,
        category_id: str,
        title: str,
        url: str,
        markdown: str = ""
    ) -> Package:
        """
        收录软件包

        Raises:
            NotFoundError: 软件包分类或创建者不存在
        """
        self._require_user(created_by)
        if self.taxonomy.get_package_category(category_id) is None:
            raise NotFoundError(Collection.PACKAGE_CATEGORIES.value, category_id)

        package = self.contents.create_package(title, markdown, created_by, category_id, url)
        self.taxonomy.adjust_package_count(category_id, 1)
        return package

    def view_content(self, content_id: str) -> ContentItem:
        """
        阅读内容：点击数加一后返回最新内容

        Raises:
            NotFoundError: 内容不存在
        """
        if not self.contents.hit(content_id):
            raise NotFoundError(Collection.CONTENTS.value, content_id)
        return self.contents.require(content_id)

    def edit_content(
        self,
        content_id: str,
        username: str,
        title: Optional[str] = None,
        markdown: Optional[str] = None
    ) -> ContentItem:
        """
        编辑内容（创建者或管理员）

        Raises:
            NotFoundError: 内容不存在
            PermissionDeniedError: 无权编辑
        """
        item = self.contents.require(content_id)
        if not self.contents.can_edit(item, username):
            raise PermissionDeniedError(username, f"edit content {content_id}")

        editor = self.users.get_by_username(username)
        return self.contents.edit(content_id, editor.id, title=title, markdown=markdown)

    def delete_content(self, content_id: str, username: str, cascade_comments: bool = False) -> int:
        """
        删除内容（创建者或管理员）

        默认不删除评论，评论会继续引用已不存在的内容；cascade_comments=True 时作为第二步一并删除

        Args:
            content_id: 内容 ID
            username: 操作者用户名
            cascade_comments: 是否同时删除评论

        Returns:
            一并删除的评论数量

        Raises:
            NotFoundError: 内容不存在
            PermissionDeniedError: 无权删除
        """
        item = self.contents.require(content_id)
        if not self.contents.can_edit(item, username):
            raise PermissionDeniedError(username, f"delete content {content_id}")

        self.contents.delete(content_id)
        if isinstance(item, Topic):
            self.taxonomy.adjust_topic_count(item.node_id, -1)
            self.status.increment_topics(-1)
        elif isinstance(item, Package):
            self.taxonomy.adjust_package_count(item.category_id, -1)

        removed = 0
        if cascade_comments:
            removed = self.comments.delete_for_content(content_id)
            if removed:
                self.status.increment_replies(-removed)
        logger.info("content %s deleted by %s (%s comments removed)", content_id, username, removed)
        return removed

    # ==================== 评论 ====================

    def post_comment(self, content_id: str, created_by: str, markdown: str) -> Comment:
        """
        发表评论

        流程：
        1. 写入评论文档（提交）
        2. 挂载：内容评论数加一；若是主题，更新最近回复人与回复时间（提交）
        3. 全局回复数加一（提交）

        第 1 步成功后，2、3 步失败会直接抛出，评论保留，计数由重新计数修复

        Raises:
            NotFoundError: 内容或评论人不存在
        """
        self._require_user(created_by)
        item = self.contents.require(content_id)

        comment = self.comments.create(
            content_id=content_id,
            markdown=markdown,
            created_by=created_by,
            content_type=item.content.type
        )

        self.contents.record_reply(content_id, comment.created_by, comment.created_at)
        self.status.increment_replies()
        return comment

    def delete_comment(self, comment_id: str, username: str) -> None:
        """
        删除评论（仅管理员），随后按存储中的实际评论重新计算内容的评论字段

        Raises:
            NotFoundError: 评论不存在
            PermissionDeniedError: 不是管理员
        """
        comment = self.comments.get_by_id(comment_id)
        if comment is None:
            raise NotFoundError(Collection.COMMENTS.value, comment_id)
        if not self.comments.can_delete(comment, username):
            raise PermissionDeniedError(username, f"delete comment {comment_id}")

        content_id = comment.content_id
        self.comments.delete(comment_id)
        self.status.increment_replies(-1)
        self.reconcile_content(content_id)

    # ==================== 重新计数 ====================

    def reconcile_content(self, content_id: str) -> Optional[ContentItem]:
        """
        按存储中的实际评论重新计算内容的评论数与最近回复人（幂等）

        Returns:
            修正后的内容视图，内容不存在返回 None
        """
        item = self.contents.get(content_id)
        if item is None:
            return None

        count = self.comments.count_for_content(content_id)
        latest = None
        if item.content.type == ContentType.TOPIC:
            latest = self.comments.latest_for_content(content_id)

        if latest is not None:
            self.contents.set_reply_state(content_id, count, latest.created_by, latest.created_at)
        else:
            self.contents.set_reply_state(content_id, count)

        if count != item.content.comment_count:
            logger.warning(
                "content %s comment_count drifted: %s -> %s",
                content_id, item.content.comment_count, count
            )
        return self.contents.get(content_id)

    def reconcile(self) -> Status:
        """
        全量重新计数：每个内容的评论字段、节点与软件包分类的成员数、全局状态

        Returns:
            修正后的 Status 对象
        """
        for kind in ContentType:
            for item in self.contents.list_by_kind(kind):
                self.reconcile_content(item.id)

        for node in self.taxonomy.list_nodes():
            self.taxonomy.recount_node(node.id)

        for category in self.taxonomy.list_package_categories():
            self.taxonomy.recount_package_category(category.id)

        status = self.status.recount()
        logger.info(
            "reconciled: %s users, %s topics, %s replies",
            status.user_count, status.topic_count, status.reply_count
        )
        return status

    def _require_user(self, user_id: str) -> User:
        user = self.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError(Collection.USERS.value, user_id)
        return user
