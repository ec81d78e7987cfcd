"""
分类 Repository
提供节点、站点分类、文章分类、软件包分类的增删改查，
分类下内容的枚举，以及成员计数的维护与重新计算
"""

import logging
from typing import List, Optional

from sqlalchemy import func, update
from sqlmodel import col, select

from forum.models.content import Article, ContentRecord, ContentType, Package, Site, Topic
from forum.models.taxonomy import ArticleCategory, Node, PackageCategory, SiteCategory

from .base import BaseRepository

logger = logging.getLogger(__name__)


class TaxonomyRepository(BaseRepository):
    """
    分类数据访问对象
    成员计数是反规范化字段，与内容写入不在同一事务，允许漂移
    """

    # ==================== 节点 ====================

    def create_node(self, slug: str, name: str, description: str = "") -> Node:
        """
        创建节点

        Args:
            slug: 短标识（唯一）
            name: 节点名称
            description: 节点描述（可选）

        Returns:
            创建的 Node 对象
        """
        return self._save(Node(slug=slug, name=name, description=description))

    def get_node(self, node_id: str) -> Optional[Node]:
        return self._get(Node, node_id)

    def get_node_by_slug(self, slug: str) -> Optional[Node]:
        statement = select(Node).where(Node.slug == slug)
        return self._first(statement)

    def list_nodes(self) -> List[Node]:
        return self._all(select(Node).order_by(col(Node.name).asc()))

    def delete_node(self, node_id: str) -> bool:
        """
        删除节点（不处理节点下的主题，主题的 node() 此后解析为 None）

        Returns:
            删除成功返回 True，节点不存在返回 False
        """
        node = self.get_node(node_id)
        if node:
            self._remove(node)
            return True
        return False

    def topics(self, node: Node) -> List[Topic]:
        """节点下的全部主题（无序）"""
        statement = select(ContentRecord).where(
            ContentRecord.node_id == node.id,
            ContentRecord.type == ContentType.TOPIC
        )
        return [Topic.from_record(record) for record in self._all(statement)]

    def adjust_topic_count(self, node_id: str, delta: int) -> bool:
        """节点主题数增减（字段级原子更新）"""
        statement = update(Node).where(Node.id == node_id).values(
            topic_count=col(Node.topic_count) + delta
        )
        return self._execute(statement) > 0

    # ==================== 站点分类 ====================

    def create_site_category(self, name: str) -> SiteCategory:
        return self._save(SiteCategory(name=name))

    def get_site_category(self, category_id: str) -> Optional[SiteCategory]:
        return self._get(SiteCategory, category_id)

    def list_site_categories(self) -> List[SiteCategory]:
        return self._all(select(SiteCategory))

    def sites(self, category: SiteCategory) -> List[Site]:
        """分类下的全部站点（无序）"""
        statement = select(ContentRecord).where(
            ContentRecord.category_id == category.id,
            ContentRecord.type == ContentType.SITE
        )
        return [Site.from_record(record) for record in self._all(statement)]

    def delete_site_category(self, category_id: str) -> bool:
        category = self.get_site_category(category_id)
        if category:
            self._remove(category)
            return True
        return False

    # ==================== 文章分类 ====================

    def create_article_category(self, name: str) -> ArticleCategory:
        return self._save(ArticleCategory(name=name))

    def get_article_category(self, category_id: str) -> Optional[ArticleCategory]:
        return self._get(ArticleCategory, category_id)

    def list_article_categories(self) -> List[ArticleCategory]:
        return self._all(select(ArticleCategory))

    def articles(self, category: ArticleCategory) -> List[Article]:
        """分类下的全部文章（无序）"""
        statement = select(ContentRecord).where(
            ContentRecord.category_id == category.id,
            ContentRecord.type == ContentType.ARTICLE
        )
        return [Article.from_record(record) for record in self._all(statement)]

    def delete_article_category(self, category_id: str) -> bool:
        category = self.get_article_category(category_id)
        if category:
            self._remove(category)
            return True
        return False

    # ==================== 软件包分类 ====================

    def create_package_category(self, slug: str, name: str) -> PackageCategory:
        return self._save(PackageCategory(slug=slug, name=name))

    def get_package_category(self, category_id: str) -> Optional[PackageCategory]:
        return self._get(PackageCategory, category_id)

    def get_package_category_by_slug(self, slug: str) -> Optional[PackageCategory]:
        statement = select(PackageCategory).where(PackageCategory.slug == slug)
        return self._first(statement)

    def list_package_categories(self) -> List[PackageCategory]:
        return self._all(select(PackageCategory).order_by(col(PackageCategory.name).asc()))

    def packages(self, category: PackageCategory) -> List[Package]:
        """分类下的全部软件包（无序）"""
        statement = select(ContentRecord).where(
            ContentRecord.category_id == category.id,
            ContentRecord.type == ContentType.PACKAGE
        )
        return [Package.from_record(record) for record in self._all(statement)]

    def adjust_package_count(self, category_id: str, delta: int) -> bool:
        statement = update(PackageCategory).where(PackageCategory.id == category_id).values(
            package_count=col(PackageCategory.package_count) + delta
        )
        return self._execute(statement) > 0

    def delete_package_category(self, category_id: str) -> bool:
        category = self.get_package_category(category_id)
        if category:
            self._remove(category)
            return True
        return False

    # ==================== 重新计数 ====================

    def _count_members(self, kind: ContentType, column, owner_id: str) -> int:
        statement = select(func.count()).select_from(ContentRecord).where(
            ContentRecord.type == kind,
            column == owner_id
        )
        return self._one(statement)

    def recount_node(self, node_id: str) -> Optional[int]:
        """
        按全量枚举重新计算节点主题数并写回

        Returns:
            重新计算后的主题数，节点不存在返回 None
        """
        node = self.get_node(node_id)
        if node is None:
            return None
        actual = self._count_members(ContentType.TOPIC, ContentRecord.node_id, node_id)
        if actual != node.topic_count:
            logger.warning("node %s topic_count drifted: %s -> %s", node.slug, node.topic_count, actual)
            node.topic_count = actual
            self._save(node)
        return actual

    def recount_package_category(self, category_id: str) -> Optional[int]:
        """
        按全量枚举重新计算软件包分类的成员数并写回

        Returns:
            重新计算后的软件包数，分类不存在返回 None
        """
        category = self.get_package_category(category_id)
        if category is None:
            return None
        actual = self._count_members(ContentType.PACKAGE, ContentRecord.category_id, category_id)
        if actual != category.package_count:
            logger.warning(
                "package category %s package_count drifted: %s -> %s",
                category.slug, category.package_count, actual
            )
            category.package_count = actual
            self._save(category)
        return actual

    def count_sites(self, category: SiteCategory) -> int:
        """站点分类不保存计数，按需统计"""
        return self._count_members(ContentType.SITE, ContentRecord.category_id, category.id)

    def count_articles(self, category: ArticleCategory) -> int:
        """文章分类不保存计数，按需统计"""
        return self._count_members(ContentType.ARTICLE, ContentRecord.category_id, category.id)
