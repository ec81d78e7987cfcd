"""
全局状态表
每个部署只有一行，记录用户/主题/回复总数和用户序号分配游标
"""

from sqlmodel import SQLModel, Field

# 全局状态行的固定主键，重复初始化时插入会因主键冲突失败
STATUS_ID = "status"


class Status(SQLModel, table=True):
    """
    全局状态表（单例）
    计数与触发它们的写操作不在同一事务，是尽力而为的计数；
    需要准确值时通过全量枚举重新计算（StatusRepository.recount）
    """
    __tablename__ = "status"

    id: str = Field(default=STATUS_ID, primary_key=True)

    user_count: int = Field(default=0, nullable=False)
    topic_count: int = Field(default=0, nullable=False)
    reply_count: int = Field(default=0, nullable=False)

    # 用户序号分配游标：最近一次分配出去的序号
    user_index: int = Field(default=0, nullable=False)
