"""
用户域模型 - 用户表
账号记录以及关注/粉丝社交关系
"""

from datetime import datetime
from typing import List, Optional

from sqlmodel import SQLModel, Field, Column, JSON
from werkzeug.security import check_password_hash, generate_password_hash

from .base import Collection, Ref, new_id, utcnow


class User(SQLModel, table=True):
    """
    用户表
    follow 与 fans 互为反向关系，由 UserRepository 同时修改两侧来维护，存储层不做约束
    """
    __tablename__ = "users"

    # 主键：不透明标识符
    id: str = Field(default_factory=new_id, primary_key=True)

    # 唯一用户名，按用户名查询是权限判断的热点
    username: str = Field(unique=True, index=True, nullable=False)

    # 密码哈希，不保存明文
    password: str = Field(default="", nullable=False)

    email: str = Field(default="", index=True)

    # 个人资料
    website: str = Field(default="")
    location: str = Field(default="")
    tagline: str = Field(default="")
    bio: str = Field(default="")
    twitter: str = Field(default="")
    weibo: str = Field(default="")

    joined_at: datetime = Field(default_factory=utcnow, nullable=False)

    # 我关注的人（用户名列表，有序）
    follow: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    # 关注我的人（用户名列表，有序）
    fans: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    is_superuser: bool = Field(default=False, nullable=False)
    is_active: bool = Field(default=False, nullable=False)

    # 待处理的激活码/重置码，为空表示没有待处理请求
    validate_code: Optional[str] = Field(default=None, index=True)
    reset_code: Optional[str] = Field(default=None, index=True)

    # 注册序号：创建时从 Status.user_index 分配，用于展示“第 N 号会员”
    index: int = Field(default=0, nullable=False)

    @property
    def ref(self) -> Ref:
        return Ref(collection=Collection.USERS, id=self.id)

    def is_followed_by(self, who: str) -> bool:
        """是否被 who 关注"""
        for username in self.fans or []:
            if username == who:
                return True
        return False

    def is_fans(self, who: str) -> bool:
        """是否关注了 who"""
        for username in self.follow or []:
            if username == who:
                return True
        return False

    def set_password(self, raw_password: str) -> None:
        self.password = generate_password_hash(raw_password)

    def check_password(self, raw_password: str) -> bool:
        if not self.password:
            return False
        return check_password_hash(self.password, raw_password)
