"""
评论 Repository
提供 comments 表的增删改查，以及评论人、所属主题、删除权限的解析
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlmodel import Session, col, select

from forum.errors import NotFoundError
from forum.markup import render_markdown
from forum.models.base import Collection, utcnow
from forum.models.comment import Comment
from forum.models.content import ContentType, Topic
from forum.models.user import User

from .base import BaseRepository
from .reference import ReferenceResolver


class CommentRepository(BaseRepository):
    """
    评论数据访问对象
    只负责评论文档本身；评论挂载后对内容计数的更新由 ForumService 完成
    """

    def __init__(self, session: Session):
        super().__init__(session)
        self.resolver = ReferenceResolver(session)

    def create(
        self,
        content_id: str,
        markdown: str,
        created_by: str,
        content_type: ContentType = ContentType.TOPIC,
        created_at: Optional[datetime] = None
    ) -> Comment:
        """
        创建评论

        Args:
            content_id: 所属内容 ID
            markdown: 评论 Markdown 源
            created_by: 评论人用户 ID
            content_type: 所属内容的类型（默认主题）
            created_at: 创建时间（可选，默认当前时间）

        Returns:
            创建的 Comment 对象
        """
        comment = Comment(
            type=content_type,
            content_id=content_id,
            markdown=markdown,
            html=render_markdown(markdown),
            created_by=created_by,
            created_at=created_at or utcnow()
        )
        return self._save(comment)

    def get_by_id(self, comment_id: str) -> Optional[Comment]:
        """
        根据 ID 获取评论

        Returns:
            Comment 对象，不存在则返回 None
        """
        return self._get(Comment, comment_id)

    def latest_for_content(self, content_id: str) -> Optional[Comment]:
        """内容下最新的一条评论（创建时间相同时取后插入的）"""
        statement = select(Comment).where(
            Comment.content_id == content_id
        ).order_by(col(Comment.created_at).desc(), col(Comment.id).desc()).limit(1)
        return self._first(statement)

    def count_for_content(self, content_id: str) -> int:
        statement = select(func.count()).select_from(Comment).where(
            Comment.content_id == content_id
        )
        return self._one(statement)

    def count(self, content_type: Optional[ContentType] = None) -> int:
        statement = select(func.count()).select_from(Comment)
        if content_type is not None:
            statement = statement.where(Comment.type == content_type)
        return self._one(statement)

    def list_for_content(self, content_id: str) -> List[Comment]:
        statement = select(Comment).where(
            Comment.content_id == content_id
        ).order_by(col(Comment.created_at).asc(), col(Comment.id).asc())
        return self._all(statement)

    # ==================== 关系与权限 ====================

    def creator(self, comment: Comment) -> User:
        """
        评论人

        Raises:
            NotFoundError: 评论人已不存在
        """
        return self.resolver.require(comment.creator_ref)

    def can_delete(self, comment: Comment, username: str) -> bool:
        """
        是否有权删除评论，只允许管理员删除

        评论作者本人也不能删除自己的评论
        """
        user = self.resolver.user_by_username(username)
        if user is None:
            return False

        return user.is_superuser

    def topic(self, comment: Comment) -> Topic:
        """
        评论所属主题

        Raises:
            NotFoundError: 所属内容不存在，或存在但不是主题
        """
        topic = self.resolver.resolve_content(comment.content_id, ContentType.TOPIC)
        if topic is None:
            raise NotFoundError(Collection.CONTENTS.value, comment.content_id)
        return topic

    # ==================== 修改 ====================

    def edit(self, comment_id: str, markdown: str, updated_by: str) -> Optional[Comment]:
        """
        编辑评论，重新渲染 html 并记录编辑者

        Returns:
            更新后的 Comment 对象，不存在则返回 None
        """
        comment = self.get_by_id(comment_id)
        if comment:
            comment.markdown = markdown
            comment.html = render_markdown(markdown)
            comment.updated_by = updated_by
            comment.updated_at = utcnow()
            comment = self._save(comment)
        return comment

    def delete(self, comment_id: str) -> Optional[Comment]:
        """
        删除评论

        Returns:
            被删除的 Comment 对象（已脱离会话），不存在则返回 None
        """
        comment = self.get_by_id(comment_id)
        if comment is None:
            return None
        self._remove(comment)
        return comment

    def delete_for_content(self, content_id: str) -> int:
        """
        删除内容下的全部评论

        Returns:
            删除的评论数量
        """
        comments = self.list_for_content(content_id)
        with self._store():
            for comment in comments:
                self.session.delete(comment)
            self.session.commit()
        return len(comments)
