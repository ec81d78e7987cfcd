"""
Repository (DAO) 模块
提供数据库操作的抽象层，封装单文档的增删改查与跨集合的引用解析
"""

from .base import BaseRepository
from .reference import ReferenceResolver
from .user_repository import UserRepository
from .content_repository import ContentRepository
from .comment_repository import CommentRepository
from .taxonomy_repository import TaxonomyRepository
from .status_repository import StatusRepository

__all__ = [
    "BaseRepository",
    "ReferenceResolver",
    "UserRepository",
    "ContentRepository",
    "CommentRepository",
    "TaxonomyRepository",
    "StatusRepository"
]
