"""
用户管理 Repository
提供 users 表的增删改查、社交关系维护以及“最近主题/最近回复”视图
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import func
from sqlmodel import col, select

from forum.errors import NotFoundError
from forum.models.base import LATEST_LIMIT, Collection
from forum.models.comment import Comment
from forum.models.content import ContentRecord, ContentType, Topic
from forum.models.user import User

from .base import BaseRepository

logger = logging.getLogger(__name__)

# 允许通过 update_profile 修改的资料字段
PROFILE_FIELDS = ("email", "website", "location", "tagline", "bio", "twitter", "weibo")


class UserRepository(BaseRepository):
    """
    用户数据访问对象
    封装所有与 users 表相关的数据库操作
    """

    def create(
        self,
        username: str,
        password: str,
        email: str = "",
        index: int = 0,
        is_superuser: bool = False,
        is_active: bool = False,
        **profile: str
    ) -> User:
        """
        创建新用户

        Args:
            username: 用户名（必须唯一）
            password: 明文密码，保存前哈希
            email: 邮箱
            index: 注册序号（由 Status.user_index 分配）
            is_superuser: 是否为管理员
            is_active: 是否已激活
            **profile: 其他资料字段（website、location 等）

        Returns:
            创建的 User 对象
        """
        user = User(
            username=username,
            email=email,
            index=index,
            is_superuser=is_superuser,
            is_active=is_active,
            **{key: value for key, value in profile.items() if key in PROFILE_FIELDS}
        )
        user.set_password(password)
        return self._save(user)

    def get_by_id(self, user_id: str) -> Optional[User]:
        """
        根据 ID 获取用户

        Returns:
            User 对象，不存在则返回 None
        """
        return self._get(User, user_id)

    def get_by_username(self, username: str) -> Optional[User]:
        """
        根据用户名获取用户

        Returns:
            User 对象，不存在则返回 None
        """
        statement = select(User).where(User.username == username)
        return self._first(statement)

    def get_by_email(self, email: str) -> Optional[User]:
        statement = select(User).where(User.email == email)
        return self._first(statement)

    def count(self) -> int:
        return self._one(select(func.count()).select_from(User))

    # ==================== 派生视图 ====================

    def latest_topics(self, user: User, limit: int = LATEST_LIMIT) -> List[Topic]:
        """
        用户发表的最近主题

        按创建时间倒序；创建时间相同时保持插入顺序（标识符递增）

        Args:
            user: 用户
            limit: 返回条数上限（默认 10）

        Returns:
            Topic 列表，没有则为空列表
        """
        statement = select(ContentRecord).where(
            ContentRecord.created_by == user.id,
            ContentRecord.type == ContentType.TOPIC
        ).order_by(
            col(ContentRecord.created_at).desc(),
            col(ContentRecord.id).asc()
        ).limit(limit)
        return [Topic.from_record(record) for record in self._all(statement)]

    def latest_replies(self, user: User, limit: int = LATEST_LIMIT) -> List[Comment]:
        """
        用户的最近回复（只统计主题评论）

        Args:
            user: 用户
            limit: 返回条数上限（默认 10）

        Returns:
            Comment 列表，按创建时间倒序
        """
        statement = select(Comment).where(
            Comment.created_by == user.id,
            Comment.type == ContentType.TOPIC
        ).order_by(
            col(Comment.created_at).desc(),
            col(Comment.id).asc()
        ).limit(limit)
        return self._all(statement)

    # ==================== 社交关系 ====================

    def follow(self, username: str, target: str) -> bool:
        """
        username 关注 target

        同时修改双方的 follow/fans，保持两者互为反向关系

        Args:
            username: 发起关注的用户名
            target: 被关注的用户名

        Returns:
            新建关注关系返回 True，已经关注过返回 False

        Raises:
            NotFoundError: 任一用户不存在
            ValueError: 关注自己
        """
        if username == target:
            raise ValueError("a user cannot follow themselves")
        follower, followee = self._pair(username, target)

        changed = False
        if not follower.is_fans(target):
            # JSON 列需要整体赋值才能被识别为修改
            follower.follow = [*(follower.follow or []), target]
            self.session.add(follower)
            changed = True
        if not followee.is_followed_by(username):
            followee.fans = [*(followee.fans or []), username]
            self.session.add(followee)
            changed = True

        if changed:
            with self._store():
                self.session.commit()
            logger.info("%s now follows %s", username, target)
        return changed

    def unfollow(self, username: str, target: str) -> bool:
        """
        username 取消关注 target

        Returns:
            解除了关注关系返回 True，原本就没有关注返回 False
        """
        follower, followee = self._pair(username, target)

        changed = False
        if follower.is_fans(target):
            follower.follow = [name for name in follower.follow if name != target]
            self.session.add(follower)
            changed = True
        if followee.is_followed_by(username):
            followee.fans = [name for name in followee.fans if name != username]
            self.session.add(followee)
            changed = True

        if changed:
            with self._store():
                self.session.commit()
        return changed

    def _pair(self, username: str, target: str):
        follower = self.get_by_username(username)
        if follower is None:
            raise NotFoundError(Collection.USERS.value, username)
        followee = self.get_by_username(target)
        if followee is None:
            raise NotFoundError(Collection.USERS.value, target)
        return follower, followee

    # ==================== 资料与账号状态 ====================

    def update_profile(self, user_id: str, **fields: str) -> Optional[User]:
        """
        更新用户资料

        只接受 PROFILE_FIELDS 中的字段，其余字段被忽略

        Returns:
            更新后的 User 对象，不存在则返回 None
        """
        user = self.get_by_id(user_id)
        if user:
            for key, value in fields.items():
                if key in PROFILE_FIELDS:
                    setattr(user, key, value)
            user = self._save(user)
        return user

    def set_superuser(self, user_id: str, is_superuser: bool = True) -> Optional[User]:
        user = self.get_by_id(user_id)
        if user:
            user.is_superuser = is_superuser
            user = self._save(user)
        return user

    def issue_validate_code(self, user_id: str) -> Optional[str]:
        """
        生成激活码

        Returns:
            激活码，用户不存在返回 None
        """
        user = self.get_by_id(user_id)
        if user is None:
            return None
        user.validate_code = uuid.uuid4().hex
        self._save(user)
        return user.validate_code

    def activate(self, validate_code: str) -> Optional[User]:
        """
        使用激活码激活账号，激活码一次性有效

        Returns:
            激活的 User 对象，激活码无效返回 None
        """
        if not validate_code:
            return None
        statement = select(User).where(User.validate_code == validate_code)
        user = self._first(statement)
        if user:
            user.is_active = True
            user.validate_code = None
            user = self._save(user)
        return user

    def issue_reset_code(self, email: str) -> Optional[str]:
        """
        为邮箱对应的用户生成密码重置码

        Returns:
            重置码，邮箱不存在返回 None
        """
        user = self.get_by_email(email)
        if user is None:
            return None
        user.reset_code = uuid.uuid4().hex
        self._save(user)
        return user.reset_code

    def reset_password(self, reset_code: str, new_password: str) -> Optional[User]:
        """
        使用重置码设置新密码，重置码一次性有效

        Returns:
            更新后的 User 对象，重置码无效返回 None
        """
        if not reset_code:
            return None
        statement = select(User).where(User.reset_code == reset_code)
        user = self._first(statement)
        if user:
            user.set_password(new_password)
            user.reset_code = None
            user = self._save(user)
        return user
