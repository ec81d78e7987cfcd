"""
社区内容模型
用户、主题、评论、站点、文章、软件包的持久化数据模型
"""

__version__ = "0.1.0"
