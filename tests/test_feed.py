import logging
import sys
import unittest
from pathlib import Path

# Ensure src/ is on sys.path so we can import the package without installation
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from kakumiru.cache import QueryCache  # noqa: E402
from kakumiru.errors import ApiError  # noqa: E402
from kakumiru.feed import (  # noqa: E402
    FEED_STALE_TIME_MS,
    PostFeed,
    TagSelection,
    build_feed_query,
    to_post_array,
    visible_posts,
)
from kakumiru.query import QueryKey  # noqa: E402
from kakumiru.zoning import ZoningFilter  # noqa: E402


logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stdout,
    force=True,
)


def post(post_id, *tag_ids):
    return {
        "id": post_id,
        "userId": "u1",
        "imageUrl": f"https://img.test/{post_id}.jpg",
        "createdAt": "2024-01-01T00:00:00Z",
        "tags": [{"id": tag_id, "name": tag_id, "category": "分類"} for tag_id in tag_ids],
        "user": {"id": "u1"},
    }


class BuildFeedQueryTests(unittest.TestCase):
    def test_all_params(self):
        key = build_feed_query(["a", "b"], ["x"], "cat")
        self.assertEqual(key, QueryKey("/posts", {"tagIds": ["a", "b"], "excludeTagIds": ["x"], "search": "cat"}))
        self.assertEqual(key.url, "/posts?tagIds=a&tagIds=b&excludeTagIds=x&search=cat")

    def test_empty_params_omitted(self):
        self.assertEqual(build_feed_query([], [], None), QueryKey("/posts"))
        self.assertEqual(build_feed_query([], [], "   ").url, "/posts")

    def test_only_exclusions(self):
        self.assertEqual(build_feed_query([], ["x", "y"]).url, "/posts?excludeTagIds=x&excludeTagIds=y")


class TagSelectionTests(unittest.TestCase):
    def test_toggle(self):
        selection = TagSelection()
        selection.toggle("t1")
        selection.toggle("t2")
        self.assertEqual(selection.selected, ["t1", "t2"])
        selection.toggle("t1")
        self.assertEqual(selection.selected, ["t2"])
        self.assertIn("t2", selection)
        self.assertEqual(len(selection), 1)

    def test_clear_all_toggles_each_off(self):
        selection = TagSelection()
        selection.toggle("t1")
        selection.toggle("t2")
        toggled = selection.clear_all()
        self.assertEqual(selection.selected, [])
        self.assertEqual(toggled, ["t1", "t2"])

    def test_clear_all_is_reversible(self):
        selection = TagSelection(["t1", "t2", "t1"])
        toggled = selection.clear_all()
        for tag_id in toggled:
            selection.toggle(tag_id)
        self.assertEqual(selection.selected, ["t1", "t2"])

    def test_iteration(self):
        self.assertEqual(list(TagSelection([1, 2])), ["1", "2"])


class NormalizationTests(unittest.TestCase):
    def test_to_post_array_shapes(self):
        self.assertEqual([p["id"] for p in to_post_array([post("1")])], ["1"])
        self.assertEqual([p["id"] for p in to_post_array({"data": [post("2")]})], ["2"])
        self.assertEqual([p["id"] for p in to_post_array({"posts": [post("3")]})], ["3"])
        self.assertEqual(to_post_array("nope"), [])
        self.assertEqual(to_post_array(None), [])

    def test_post_tags_normalized(self):
        raw = post(5, "c1")
        raw["tags"] = {"tags": [{"id": 9, "category": "bogus"}]}
        raw.pop("user")
        normalized = to_post_array([raw])[0]
        self.assertEqual(normalized["id"], "5")
        self.assertEqual(normalized["tags"][0]["id"], "9")
        self.assertEqual(normalized["tags"][0]["category"], "free")
        self.assertEqual(normalized["user"], {})
        self.assertIsNone(normalized["caption"])

    def test_malformed_posts_dropped(self):
        with self.assertLogs("kakumiru.feed", level="WARNING"):
            posts = to_post_array([post("1"), {"caption": "no id"}, 7])
        self.assertEqual([p["id"] for p in posts], ["1"])

    def test_visible_posts(self):
        posts = to_post_array([post("1", "a"), post("2", "b"), post("3")])
        self.assertEqual([p["id"] for p in visible_posts(posts, ["b"])], ["1", "3"])
        self.assertEqual(len(visible_posts(posts, [])), 3)


class PostFeedTests(unittest.TestCase):
    def setUp(self) -> None:
        self.fetched: list[str] = []
        self.responses: dict[str, object] = {}

        def fetcher(url):
            self.fetched.append(url)
            response = self.responses.get(url, [])
            if isinstance(response, BaseException):
                raise response
            return response

        self.cache = QueryCache(fetcher)
        self.zoning = ZoningFilter(lambda ids: None)
        self.feed = PostFeed(self.cache, self.zoning)

    def test_read_without_zoning_loaded(self):
        self.responses["/posts?tagIds=a"] = [post("1", "a")]
        posts = self.feed.read(["a"])
        self.assertEqual([p["id"] for p in posts], ["1"])
        self.assertEqual(self.fetched, ["/posts?tagIds=a"])

    def test_read_sends_committed_exclusions(self):
        self.zoning.load(["x"])
        self.zoning.toggle("y")
        self.responses["/posts?excludeTagIds=x"] = [post("1", "a"), post("2", "x")]
        posts = self.feed.read()
        self.assertEqual(self.fetched, ["/posts?excludeTagIds=x"])
        self.assertEqual([p["id"] for p in posts], ["1"])

    def test_read_uses_feed_stale_time(self):
        self.feed.read(["a"], "cat")
        entry = self.cache.get_entry(self.feed.query(["a"], "cat"))
        self.assertEqual(entry.stale_time_ms, FEED_STALE_TIME_MS)
        self.feed.read(["a"], "cat")
        self.assertEqual(len(self.fetched), 1)

    def test_read_errors_propagate(self):
        self.responses["/posts"] = ApiError("down", status=503)
        with self.assertRaises(ApiError):
            self.feed.read()

    def test_feed_without_zoning(self):
        feed = PostFeed(self.cache)
        self.assertEqual(feed.excluded_ids(), [])


if __name__ == "__main__":
    unittest.main()
