"""
错误分类
NotFound（引用的实体不存在）、PermissionDenied（受保护的写操作被拒绝）、
Conflict（违反唯一约束）、StoreUnavailable（存储不可用，始终向上抛出，不在本层重试）
"""

from typing import Optional


class ForumError(Exception):
    """所有领域错误的基类"""


class NotFoundError(ForumError):
    """
    引用的实体不存在

    可能是合法状态（例如节点已被删除），由调用方决定是否致命
    """

    def __init__(self, collection: str, identifier: Optional[str]):
        self.collection = collection
        self.identifier = identifier
        super().__init__(f"{collection} '{identifier}' not found")


class PermissionDeniedError(ForumError):
    """受保护的写操作未通过权限判断"""

    def __init__(self, username: str, action: str):
        self.username = username
        self.action = action
        super().__init__(f"user '{username}' is not allowed to {action}")


class StoreUnavailableError(ForumError):
    """存储协作方无响应或连接失败"""


class ConflictError(ForumError):
    """写入违反唯一约束（重复的用户名、slug 或全局状态行）"""
