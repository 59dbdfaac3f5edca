"""
Example: Managing a Reading List with stockle

This example builds an in-memory library, saves a few articles, tags and
filters them, and optionally pushes the result to an article backend.

Usage:
    python examples/reading_list.py

    # with a backend
    export STOCKLE_API_BASE_URL="https://stockle.example.com"
    export STOCKLE_API_TOKEN="your-token"
    python examples/reading_list.py
"""

import logging

from stockle import (
    CollectionStore,
    LibraryClient,
    LibrarySettings,
    LibrarySync,
    LibraryView,
)


def main():
    logging.basicConfig(level=logging.INFO)

    # -------------------------------------------------------------------------
    # 1. Build the library
    # -------------------------------------------------------------------------

    settings = LibrarySettings.from_env()
    store = CollectionStore(
        categories=[
            {"id": "tech", "name": "Tech", "color": "#3B82F6", "displayOrder": 0},
            {"id": "life", "name": "Life", "color": "#10B981", "displayOrder": 1},
        ],
        settings=settings,
    )

    # -------------------------------------------------------------------------
    # 2. Save some articles
    # -------------------------------------------------------------------------

    print("=== Saving ===\n")

    hooks = store.save({"url": "https://react.dev/learn/hooks", "tags": ["React", "frontend"]})
    store.apply_metadata(hooks.id, title="Understanding React Hooks", reading_time_seconds=420)

    loops = store.save({"url": "https://go.dev/blog/loopvar", "categoryId": "tech", "tags": [" go "]})
    store.apply_metadata(loops.id, title="Fixing For Loops in Go 1.22", author="David")

    # Same tag, different spelling: reuses the existing identity
    store.save({"url": "https://go.dev/blog/range-functions", "tags": ["Go"]})

    for article in store:
        print(f"  - {article.title} [{', '.join(article.tag_names)}] ~{article.reading_minutes} min")

    # -------------------------------------------------------------------------
    # 3. Read, favourite, archive
    # -------------------------------------------------------------------------

    store.update_progress(hooks.id, 0.6)
    store.toggle_favorite(loops.id)
    store.set_status(loops.id, "read")

    print("\n=== Tags ===\n")
    for usage in store.tags.list_known():
        print(f"  {usage.tag.name}: {usage.usage_count}")

    print("\n=== Categories ===\n")
    for category, count in store.categories_with_counts():
        print(f"  {category.name}: {count}")

    # -------------------------------------------------------------------------
    # 4. Filter and search
    # -------------------------------------------------------------------------

    print("\n=== Views ===\n")

    view = LibraryView(store)
    view.set_filters({"status": "unread"})
    print(f"Unread: {[a.title for a in view]}")

    view.reset_filters()
    view.submit_query("go")
    print(f"Matching 'go': {[a.title for a in view]}")

    view.set_filters(view.filter_spec.toggle_favorite())
    print(f"Favourite and matching 'go': {[a.title for a in view]}")
    view.close()

    # -------------------------------------------------------------------------
    # 5. Sync with a backend (optional)
    # -------------------------------------------------------------------------

    if not settings.has_backend:
        print("\nNo STOCKLE_API_BASE_URL set, skipping sync.")
        return

    client = LibraryClient.from_settings(settings)
    sync = LibrarySync(store, client)
    try:
        sync.pull()
        print(f"\nPulled {len(store)} article(s) from {client.api_base}")

        sync.watch()
        if len(store):
            store.toggle_favorite(store[0].id)
        sync.unwatch()
    finally:
        client.close()


if __name__ == "__main__":
    main()
