"""
内容域模型 - 通用内容信封与四种内容类型
主题、文章、站点、软件包共享同一个内容信封（组合而非继承），
统一存放在 contents 表中，用 type 区分具体类型
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Type, Union

from sqlmodel import SQLModel, Field

from .base import Collection, Ref, new_id, utcnow


class ContentType(str, Enum):
    """内容类型枚举，同时作为评论的类型标记"""
    TOPIC = "topic"
    ARTICLE = "article"
    SITE = "site"
    PACKAGE = "package"


class ContentRecord(SQLModel, table=True):
    """
    内容存储表
    一行即一份内容文档：信封字段 + 各类型专有字段（均可为空）
    仓储层负责把它组合成 Topic/Article/Site/Package 视图，调用方不直接使用
    """
    __tablename__ = "contents"

    id: str = Field(default_factory=new_id, primary_key=True)

    # ==================== 信封字段 ====================

    # 类型标记，按类型 + 创建者查询“最近主题”
    type: ContentType = Field(index=True, nullable=False)

    title: str = Field(nullable=False)

    # 正文 Markdown 源与渲染结果；html 只能由 markdown 重新渲染得到
    markdown: str = Field(default="", nullable=False)
    html: str = Field(default="", nullable=False)

    # 反规范化评论数，与评论插入不在同一事务
    comment_count: int = Field(default=0, nullable=False)

    # 点击数，只增不减
    hits: int = Field(default=0, nullable=False)

    created_at: datetime = Field(default_factory=utcnow, index=True, nullable=False)
    created_by: str = Field(index=True, nullable=False)

    # 为空表示从未被编辑
    updated_at: Optional[datetime] = Field(default=None)
    updated_by: Optional[str] = Field(default=None)

    # ==================== 类型专有字段 ====================

    # 主题
    node_id: Optional[str] = Field(default=None, index=True)
    latest_replier_id: Optional[str] = Field(default=None)
    latest_replied_at: Optional[datetime] = Field(default=None)

    # 文章/站点/软件包所属分类
    category_id: Optional[str] = Field(default=None, index=True)

    # 站点/软件包链接
    url: Optional[str] = Field(default=None)

    # 转载文章的原始出处
    original_source: Optional[str] = Field(default=None)
    original_url: Optional[str] = Field(default=None)


class Content(SQLModel):
    """
    内容信封
    不单独持久化，组合进每一种具体内容类型
    """
    type: ContentType
    title: str
    markdown: str = ""
    html: str = ""
    comment_count: int = 0
    hits: int = 0
    created_at: datetime
    created_by: str
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None

    @property
    def creator_ref(self) -> Ref:
        return Ref(collection=Collection.USERS, id=self.created_by)

    @property
    def updater_ref(self) -> Optional[Ref]:
        """未被编辑过时为 None，与“引用已失效”区分开"""
        if not self.updated_by:
            return None
        return Ref(collection=Collection.USERS, id=self.updated_by)

    @classmethod
    def from_record(cls, record: ContentRecord) -> "Content":
        return cls(
            type=record.type,
            title=record.title,
            markdown=record.markdown,
            html=record.html,
            comment_count=record.comment_count,
            hits=record.hits,
            created_at=record.created_at,
            created_by=record.created_by,
            updated_at=record.updated_at,
            updated_by=record.updated_by,
        )


class Topic(SQLModel):
    """
    主题：信封 + 所属节点 + 最近回复人
    latest_replier_id 与 latest_replied_at 要么都为空（尚无回复），要么都有值
    """
    id: str
    content: Content
    node_id: str
    latest_replier_id: Optional[str] = None
    latest_replied_at: Optional[datetime] = None

    @property
    def ref(self) -> Ref:
        return Ref(collection=Collection.CONTENTS, id=self.id)

    @property
    def node_ref(self) -> Ref:
        return Ref(collection=Collection.NODES, id=self.node_id)

    @property
    def latest_replier_ref(self) -> Optional[Ref]:
        if not self.latest_replier_id:
            return None
        return Ref(collection=Collection.USERS, id=self.latest_replier_id)

    @classmethod
    def from_record(cls, record: ContentRecord) -> "Topic":
        return cls(
            id=record.id,
            content=Content.from_record(record),
            node_id=record.node_id or "",
            latest_replier_id=record.latest_replier_id,
            latest_replied_at=record.latest_replied_at,
        )


class Article(SQLModel):
    """文章：信封 + 所属文章分类 + 转载出处"""
    id: str
    content: Content
    category_id: str
    original_source: Optional[str] = None
    original_url: Optional[str] = None

    @property
    def ref(self) -> Ref:
        return Ref(collection=Collection.CONTENTS, id=self.id)

    @property
    def category_ref(self) -> Ref:
        return Ref(collection=Collection.ARTICLE_CATEGORIES, id=self.category_id)

    @classmethod
    def from_record(cls, record: ContentRecord) -> "Article":
        return cls(
            id=record.id,
            content=Content.from_record(record),
            category_id=record.category_id or "",
            original_source=record.original_source,
            original_url=record.original_url,
        )


class Site(SQLModel):
    """站点：信封 + 链接 + 所属站点分类"""
    id: str
    content: Content
    url: str
    category_id: str

    @property
    def ref(self) -> Ref:
        return Ref(collection=Collection.CONTENTS, id=self.id)

    @property
    def category_ref(self) -> Ref:
        return Ref(collection=Collection.SITE_CATEGORIES, id=self.category_id)

    @classmethod
    def from_record(cls, record: ContentRecord) -> "Site":
        return cls(
            id=record.id,
            content=Content.from_record(record),
            url=record.url or "",
            category_id=record.category_id or "",
        )


class Package(SQLModel):
    """软件包：信封 + 所属软件包分类 + 项目链接"""
    id: str
    content: Content
    category_id: str
    url: str

    @property
    def ref(self) -> Ref:
        return Ref(collection=Collection.CONTENTS, id=self.id)

    @property
    def category_ref(self) -> Ref:
        return Ref(collection=Collection.PACKAGE_CATEGORIES, id=self.category_id)

    @classmethod
    def from_record(cls, record: ContentRecord) -> "Package":
        return cls(
            id=record.id,
            content=Content.from_record(record),
            category_id=record.category_id or "",
            url=record.url or "",
        )


ContentItem = Union[Topic, Article, Site, Package]

KIND_VIEWS: Dict[ContentType, Type[SQLModel]] = {
    ContentType.TOPIC: Topic,
    ContentType.ARTICLE: Article,
    ContentType.SITE: Site,
    ContentType.PACKAGE: Package,
}


def compose(record: ContentRecord) -> ContentItem:
    """
    按类型标记把存储行组合成具体内容视图

    Args:
        record: contents 表中的一行

    Returns:
        Topic/Article/Site/Package 之一
    """
    return KIND_VIEWS[record.type].from_record(record)
