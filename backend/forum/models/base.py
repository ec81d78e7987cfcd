"""
基础模型模块
提供标识符生成、集合枚举和类型化引用
"""

import itertools
import os
import time
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict

# “最近 N 条”视图的默认条数
LATEST_LIMIT = 10

_machine = os.urandom(5).hex()
_counter = itertools.count()


def new_id() -> str:
    """
    生成不透明的全局唯一标识符

    布局同 ObjectId：4 字节秒级时间戳 + 5 字节进程随机数 + 3 字节计数器，
    同一进程内生成的标识符按创建顺序递增。
    多个进程在同一秒内生成的标识符按进程随机数排序，不反映跨进程的创建顺序

    Returns:
        24 位十六进制字符串
    """
    seconds = int(time.time()) & 0xFFFFFFFF
    count = next(_counter) & 0xFFFFFF
    return f"{seconds:08x}{_machine}{count:06x}"


def utcnow() -> datetime:
    """返回带时区的当前 UTC 时间"""
    return datetime.now(timezone.utc)


class Collection(str, Enum):
    """集合（表）名称枚举"""
    USERS = "users"
    NODES = "nodes"
    CONTENTS = "contents"
    COMMENTS = "comments"
    SITE_CATEGORIES = "site_categories"
    ARTICLE_CATEGORIES = "article_categories"
    PACKAGE_CATEGORIES = "package_categories"
    STATUS = "status"


class Ref(BaseModel):
    """
    类型化引用：标识符 + 它所指向的集合

    解析总是显式的按需查询（见 ReferenceResolver），从不自动关联
    """
    model_config = ConfigDict(frozen=True)

    collection: Collection
    id: str

    def __str__(self) -> str:
        return f"{self.collection.value}/{self.id}"
