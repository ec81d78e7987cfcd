"""
数据模型单元测试
验证标识符、类型化引用、用户社交判断以及内容组合
"""

import pytest
from pydantic import ValidationError

from forum.models import (
    Article, Collection, Comment, ContentRecord, ContentType, Package, Ref,
    Site, Topic, User, compose, new_id
)


class TestIdentifiers:
    """测试标识符生成"""

    def test_new_id_format(self):
        """测试标识符是 24 位十六进制字符串"""
        identifier = new_id()

        assert len(identifier) == 24
        int(identifier, 16)

    def test_new_id_is_monotonic(self):
        """测试同一进程内生成的标识符按创建顺序递增"""
        ids = [new_id() for _ in range(500)]

        assert ids == sorted(ids)
        assert len(set(ids)) == len(ids)


class TestRef:
    """测试类型化引用"""

    def test_ref_equality_and_str(self):
        """测试引用按集合与标识符比较"""
        a = Ref(collection=Collection.USERS, id="abc")
        b = Ref(collection=Collection.USERS, id="abc")
        c = Ref(collection=Collection.NODES, id="abc")

        assert a == b
        assert a != c
        assert str(a) == "users/abc"

    def test_ref_is_immutable(self):
        """测试引用不可修改"""
        ref = Ref(collection=Collection.USERS, id="abc")

        with pytest.raises(ValidationError):
            ref.id = "other"


class TestUser:
    """测试用户模型"""

    def test_social_predicates(self):
        """测试 is_followed_by 查 fans，is_fans 查 follow"""
        user = User(username="alice", follow=["bob"], fans=["carol"])

        assert user.is_followed_by("carol")
        assert not user.is_followed_by("bob")
        assert user.is_fans("bob")
        assert not user.is_fans("carol")

    def test_social_predicates_on_empty_lists(self):
        """测试没有任何关注关系时返回 False"""
        user = User(username="alice")

        assert not user.is_followed_by("bob")
        assert not user.is_fans("bob")

    def test_password_hashing(self):
        """测试密码以哈希形式保存"""
        user = User(username="alice")
        user.set_password("secret")

        assert user.password != "secret"
        assert user.check_password("secret")
        assert not user.check_password("wrong")

    def test_ref(self):
        user = User(username="alice")

        assert user.ref == Ref(collection=Collection.USERS, id=user.id)


class TestContentComposition:
    """测试内容信封与具体类型的组合"""

    def test_compose_topic(self):
        """测试主题行组合成 Topic 视图"""
        record = ContentRecord(
            type=ContentType.TOPIC, title="Hello", created_by="u1", node_id="n1"
        )
        topic = compose(record)

        assert isinstance(topic, Topic)
        assert topic.id == record.id
        assert topic.content.title == "Hello"
        assert topic.node_ref == Ref(collection=Collection.NODES, id="n1")
        assert topic.latest_replier_ref is None
        assert topic.latest_replied_at is None

    @pytest.mark.parametrize("kind, view, collection", [
        (ContentType.ARTICLE, Article, Collection.ARTICLE_CATEGORIES),
        (ContentType.SITE, Site, Collection.SITE_CATEGORIES),
        (ContentType.PACKAGE, Package, Collection.PACKAGE_CATEGORIES),
    ])
    def test_compose_categorised_kinds(self, kind, view, collection):
        """测试文章/站点/软件包的分类引用指向各自的分类集合"""
        record = ContentRecord(
            type=kind, title="x", created_by="u1", category_id="c1", url="https://example.com"
        )
        item = compose(record)

        assert isinstance(item, view)
        assert item.category_ref == Ref(collection=collection, id="c1")
        assert item.ref.collection == Collection.CONTENTS

    def test_envelope_refs(self):
        """测试未编辑过的内容没有编辑者引用"""
        record = ContentRecord(type=ContentType.TOPIC, title="x", created_by="u1", node_id="n1")
        topic = compose(record)

        assert topic.content.creator_ref == Ref(collection=Collection.USERS, id="u1")
        assert topic.content.updater_ref is None

        record.updated_by = "u2"
        assert compose(record).content.updater_ref == Ref(collection=Collection.USERS, id="u2")


class TestComment:
    """测试评论模型"""

    def test_comment_refs(self):
        comment = Comment(content_id="t1", markdown="hi", created_by="u1")

        assert comment.type == ContentType.TOPIC
        assert comment.content_ref == Ref(collection=Collection.CONTENTS, id="t1")
        assert comment.creator_ref == Ref(collection=Collection.USERS, id="u1")
        assert comment.updater_ref is None
