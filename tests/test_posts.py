import logging
import sys
import unittest
from pathlib import Path
from unittest.mock import MagicMock

# Ensure src/ is on sys.path so we can import the package without installation
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from kakumiru.client import Kakumiru  # noqa: E402
from kakumiru.errors import ApiError, UnauthorizedError, ValidationError  # noqa: E402
from kakumiru.taxonomy import to_tag_array  # noqa: E402

from _fakes import FakeResponse, RoutingSession  # noqa: E402


logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stdout,
    force=True,
)

BASE = "https://k.test"
TAGS = to_tag_array([
    {"id": "t1", "name": "猫", "category": "分類"},
    {"id": "t2", "name": "横", "category": "角度"},
])
POST = {
    "id": "p1",
    "userId": "u1",
    "imageUrl": "https://img.test/p1.jpg",
    "createdAt": "2024-01-01",
    "tags": [{"id": "t1", "name": "猫", "category": "分類"}],
    "user": {"id": "u1"},
}


class PostsTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.session = RoutingSession(
            BASE,
            {
                ("GET", "/api/posts"): FakeResponse(200, [POST]),
                ("GET", "/api/tags"): FakeResponse(200, TAGS),
                ("POST", "/api/posts"): FakeResponse(201, {"ok": True, "post": POST}),
            },
        )
        self.notes = []
        self.redirects = []
        self.client = Kakumiru(
            base_url=BASE,
            session=self.session,
            notify=lambda kind, message: self.notes.append((kind, message)),
            on_unauthorized=self.redirects.append,
        )
        self.posts = self.client.posts


class ValidationTests(PostsTestCase):
    def test_missing_image_rejected_without_network(self):
        with self.assertRaises(ValidationError) as ctx:
            self.posts.create("", ["t1"], tags=TAGS)
        self.assertEqual(ctx.exception.reason, "image required")
        self.assertEqual(self.session.calls, [])

    def test_missing_image_checked_before_tag_fetch(self):
        with self.assertRaises(ValidationError):
            self.posts.create(None, ["t1"])  # type: ignore[arg-type]
        self.assertEqual(self.session.calls, [])

    def test_no_tags_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            self.posts.create("https://img.test/a.jpg", [], tags=TAGS)
        self.assertEqual(ctx.exception.reason, "at least one tag required")

    def test_missing_classification_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            self.posts.create("https://img.test/a.jpg", ["t2"], tags=TAGS)
        self.assertEqual(ctx.exception.reason, "at least one classification tag required")
        self.assertEqual(self.session.calls, [])

    def test_uses_cached_tags_when_not_given(self):
        self.posts.create("https://img.test/a.jpg", ["t1"])
        self.assertEqual(self.session.count("GET", "/api/tags"), 1)
        self.assertEqual(self.session.count("POST", "/api/posts"), 1)

    def test_unavailable_tags_raise_api_error(self):
        self.session.routes[("GET", "/api/tags")] = FakeResponse(503, None, reason="Service Unavailable")
        with self.assertRaises(ApiError) as ctx:
            self.posts.create("https://img.test/new.jpg", ["t1"])
        self.assertEqual(ctx.exception.status, 503)
        self.assertEqual(self.session.count("POST", "/api/posts"), 0)

    def test_validation_error_is_value_error(self):
        with self.assertRaises(ValueError):
            self.posts.create("", ["t1"], tags=TAGS)


class CreateTests(PostsTestCase):
    def test_create_sends_body(self):
        created = self.posts.create("https://img.test/a.jpg", ["t1", "t2", "t1"], caption="  hi  ", tags=TAGS)
        self.assertEqual(created["id"], "p1")
        self.assertEqual(
            self.session.calls[-1],
            ("POST", "/api/posts", {"imageUrl": "https://img.test/a.jpg", "tagIds": ["t1", "t2"], "caption": "hi"}),
        )
        self.assertIn(("success", "post uploaded"), self.notes)

    def test_blank_caption_omitted(self):
        self.posts.create("https://img.test/a.jpg", ["t1"], caption="   ", tags=TAGS)
        self.assertNotIn("caption", self.session.calls[-1][2])

    def test_create_invalidates_feed(self):
        self.session.routes[("GET", "/api/posts?tagIds=t1")] = FakeResponse(200, [POST])
        self.posts.list(["t1"])
        self.posts.list(["t1"])
        self.assertEqual(self.session.count("GET", "/api/posts?tagIds=t1"), 1)
        self.posts.create("https://img.test/a.jpg", ["t1"], tags=TAGS)
        self.posts.list(["t1"])
        self.assertEqual(self.session.count("GET", "/api/posts?tagIds=t1"), 2)

    def test_ok_false_body_raises(self):
        self.session.routes[("POST", "/api/posts")] = FakeResponse(200, {"ok": False, "error": "too big"})
        with self.assertRaises(ApiError):
            self.posts.create("https://img.test/a.jpg", ["t1"], tags=TAGS)
        self.assertEqual(self.notes, [("error", "too big")])

    def test_unauthorized_create_redirects(self):
        self.session.routes[("POST", "/api/posts")] = FakeResponse(401, {"message": "Unauthorized"}, reason="Unauthorized")
        with self.assertRaises(UnauthorizedError):
            self.posts.create("https://img.test/a.jpg", ["t1"], tags=TAGS)
        self.assertEqual(self.notes, [("error", "login required")])
        self.assertEqual(self.redirects, [f"{BASE}/api/auth/google"])

    def test_failed_create_keeps_cache(self):
        self.posts.list()
        self.session.routes[("POST", "/api/posts")] = FakeResponse(500, {"message": "boom"}, reason="Error")
        with self.assertRaises(ApiError):
            self.posts.create("https://img.test/a.jpg", ["t1"], tags=TAGS)
        self.posts.list()
        self.assertEqual(self.session.count("GET", "/api/posts"), 1)

    def test_create_returns_bare_post(self):
        self.session.routes[("POST", "/api/posts")] = FakeResponse(201, POST)
        self.assertEqual(self.posts.create("https://img.test/a.jpg", ["t1"], tags=TAGS)["id"], "p1")

    def test_create_without_post_in_body(self):
        self.session.routes[("POST", "/api/posts")] = FakeResponse(201, {"ok": True})
        self.assertIsNone(self.posts.create("https://img.test/a.jpg", ["t1"], tags=TAGS))


class PublishTests(PostsTestCase):
    def test_publish_uploads_then_creates(self):
        uploader = MagicMock(return_value="https://cdn.test/x.jpg")
        self.posts.publish(b"jpeg-bytes", ["t1"], uploader, tags=TAGS)
        uploader.assert_called_once_with(b"jpeg-bytes")
        self.assertEqual(self.session.calls[-1][2]["imageUrl"], "https://cdn.test/x.jpg")

    def test_publish_without_image_never_uploads(self):
        uploader = MagicMock()
        with self.assertRaises(ValidationError) as ctx:
            self.posts.publish(None, ["t1"], uploader, tags=TAGS)
        self.assertEqual(ctx.exception.reason, "image required")
        uploader.assert_not_called()
        self.assertEqual(self.session.calls, [])

    def test_publish_without_classification_never_uploads(self):
        uploader = MagicMock()
        with self.assertRaises(ValidationError):
            self.posts.publish(b"jpeg", ["t2"], uploader, tags=TAGS)
        uploader.assert_not_called()


class ListTests(PostsTestCase):
    def test_list_applies_zoning(self):
        self.session.routes[("GET", "/api/exclude-tags")] = FakeResponse(200, ["t9"])
        self.session.routes[("GET", "/api/posts?excludeTagIds=t9&search=cat")] = FakeResponse(200, [POST])
        self.client.zoning.load()
        posts = self.posts.list(search="cat")
        self.assertEqual([p["id"] for p in posts], ["p1"])

    def test_list_error_propagates(self):
        self.session.routes[("GET", "/api/posts")] = FakeResponse(503, None, reason="Service Unavailable")
        with self.assertRaises(ApiError):
            self.posts.list()


if __name__ == "__main__":
    unittest.main()
