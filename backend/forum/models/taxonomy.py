"""
分类域模型 - 节点与各类分类表
节点归类主题，站点/文章/软件包各有自己的分类
"""

from sqlmodel import SQLModel, Field

from .base import Collection, Ref, new_id


class Node(SQLModel, table=True):
    """
    节点表
    topic_count 是反规范化计数，允许与实际主题数短暂不一致，由重新计数修复
    """
    __tablename__ = "nodes"

    id: str = Field(default_factory=new_id, primary_key=True)

    # 短标识，用于 URL（如 "general"）
    slug: str = Field(unique=True, index=True, nullable=False)

    name: str = Field(nullable=False)
    description: str = Field(default="")

    topic_count: int = Field(default=0, nullable=False)

    @property
    def ref(self) -> Ref:
        return Ref(collection=Collection.NODES, id=self.id)


class SiteCategory(SQLModel, table=True):
    """站点分类表"""
    __tablename__ = "site_categories"

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(nullable=False)

    @property
    def ref(self) -> Ref:
        return Ref(collection=Collection.SITE_CATEGORIES, id=self.id)


class ArticleCategory(SQLModel, table=True):
    """文章分类表"""
    __tablename__ = "article_categories"

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(nullable=False)

    @property
    def ref(self) -> Ref:
        return Ref(collection=Collection.ARTICLE_CATEGORIES, id=self.id)


class PackageCategory(SQLModel, table=True):
    """
    软件包分类表
    package_count 同 Node.topic_count，是反规范化计数
    """
    __tablename__ = "package_categories"

    id: str = Field(default_factory=new_id, primary_key=True)
    slug: str = Field(unique=True, index=True, nullable=False)
    name: str = Field(nullable=False)
    package_count: int = Field(default=0, nullable=False)

    @property
    def ref(self) -> Ref:
        return Ref(collection=Collection.PACKAGE_CATEGORIES, id=self.id)
