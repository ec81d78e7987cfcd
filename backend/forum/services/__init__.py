"""
服务层模块
编排跨集合的写操作与反规范化计数维护
"""

from .forum_service import ForumService

__all__ = ["ForumService"]
