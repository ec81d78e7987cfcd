"""
评论域模型 - 评论表
评论独立存储，通过 content_id 引用所属内容，不嵌入内容文档
"""

from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field

from .base import Collection, Ref, new_id, utcnow
from .content import ContentType


class Comment(SQLModel, table=True):
    """
    评论表
    type 记录所属内容的类型（实际使用中几乎都是主题评论），
    用于在不加载内容的情况下筛选“主题回复”
    """
    __tablename__ = "comments"

    id: str = Field(default_factory=new_id, primary_key=True)

    type: ContentType = Field(default=ContentType.TOPIC, index=True, nullable=False)

    # 所属内容，按内容查询评论列表的热点
    content_id: str = Field(index=True, nullable=False)

    markdown: str = Field(default="", nullable=False)
    html: str = Field(default="", nullable=False)

    created_by: str = Field(index=True, nullable=False)
    created_at: datetime = Field(default_factory=utcnow, index=True, nullable=False)

    updated_by: Optional[str] = Field(default=None)
    updated_at: Optional[datetime] = Field(default=None)

    @property
    def ref(self) -> Ref:
        return Ref(collection=Collection.COMMENTS, id=self.id)

    @property
    def content_ref(self) -> Ref:
        return Ref(collection=Collection.CONTENTS, id=self.content_id)

    @property
    def creator_ref(self) -> Ref:
        return Ref(collection=Collection.USERS, id=self.created_by)

    @property
    def updater_ref(self) -> Optional[Ref]:
        if not self.updated_by:
            return None
        return Ref(collection=Collection.USERS, id=self.updated_by)
