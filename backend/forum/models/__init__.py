"""
数据库模型模块
导出所有表模型、内容视图和枚举类型
"""

# 基础
from .base import LATEST_LIMIT, Collection, Ref, new_id, utcnow

# 用户域
from .user import User

# 分类域
from .taxonomy import Node, SiteCategory, ArticleCategory, PackageCategory

# 内容域
from .content import (
    ContentType, ContentRecord, Content,
    Topic, Article, Site, Package, ContentItem, compose
)
from .comment import Comment

# 全局状态
from .status import Status

__all__ = [
    # 基础
    "LATEST_LIMIT", "Collection", "Ref", "new_id", "utcnow",
    # 用户域
    "User",
    # 分类域
    "Node", "SiteCategory", "ArticleCategory", "PackageCategory",
    # 内容域
    "ContentType", "ContentRecord", "Content",
    "Topic", "Article", "Site", "Package", "ContentItem", "compose",
    "Comment",
    # 全局状态
    "Status"
]
