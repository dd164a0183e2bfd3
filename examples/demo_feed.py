"""CLI demo that browses the Kakumiru feed with :class:`kakumiru.Kakumiru`.

Run with the virtual environment activated::

    python examples/demo_feed.py [TAG_NAME ...]

Set ``KAKUMIRU_API_BASE_URL`` if your server is not at the default
(``http://localhost:5000``). Zoning exclusions require a logged-in session,
so without one the feed is shown unfiltered.
"""

import logging
import os
import sys
from pprint import pprint

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_DIR = os.path.join(PROJECT_ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from kakumiru import Kakumiru, TagSelection
from kakumiru.taxonomy import category_label, featured_tags, filter_tags_by_name

logging.basicConfig(level=logging.INFO)


def main(names: list[str]) -> None:
    with Kakumiru(notify=lambda kind, message: print(f"[{kind}] {message}")) as client:
        tags = client.tags.list()
        print(f"Fetched {len(tags)} tags")

        print("\nFeatured tags:")
        for tag in featured_tags(tags):
            print(f"  {category_label(tag['category'])}: {tag['name']}")

        selection = TagSelection()
        for name in names:
            for tag in filter_tags_by_name(tags, name):
                selection.toggle(tag["id"])

        if client.auth.is_authenticated():
            client.zoning.load()
            print(f"\nZoning: {client.zoning.filter.summary()}")

        posts = client.posts.list(selection.selected)
        print(f"\nFeed for {selection.selected or 'all tags'}: {len(posts)} posts")
        for post in posts[:5]:
            pprint({key: post.get(key) for key in ("id", "caption", "imageUrl", "isFavorited")})


if __name__ == "__main__":
    main(sys.argv[1:])
