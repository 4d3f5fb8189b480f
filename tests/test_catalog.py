"""
Tests for the catalog service (categories and items).

These tests verify:
  - seed_defaults installs the starter rows once and is a no-op afterwards
  - Categories come back in display order and hidden ones are filtered
  - Items can be listed across categories or for one category, with their JSON data intact
"""

from sqlalchemy import func, select, update

from webbase.models.catalog import Category, Item
from webbase.services import catalog_service


async def _count(db, model) -> int:
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar_one()


class TestSeed:

    async def test_seed_creates_defaults(self, db_session):
        created = await catalog_service.seed_defaults(db_session)
        await db_session.commit()

        assert created == len(catalog_service.DEFAULT_CATEGORIES)
        assert await _count(db_session, Category) == 4
        assert await _count(db_session, Item) == 4

    async def test_seed_is_idempotent(self, db_session):
        await catalog_service.seed_defaults(db_session)
        await db_session.commit()

        assert await catalog_service.seed_defaults(db_session) == 0
        await db_session.commit()
        assert await _count(db_session, Category) == 4
        assert await _count(db_session, Item) == 4

    async def test_seed_fills_in_missing_category(self, db_session):
        """Only categories created by this run get a sample item."""
        db_session.add(Category(category_name="general", display_name="Custom General", display_order=9))
        await db_session.commit()

        assert await catalog_service.seed_defaults(db_session) == 3
        await db_session.commit()

        general = await catalog_service.get_category_by_name(db_session, "general")
        assert general.display_name == "Custom General"
        assert await _count(db_session, Item) == 3


class TestCategories:

    async def test_display_order(self, db_session):
        await catalog_service.seed_defaults(db_session)
        await db_session.commit()

        names = [c.category_name for c in await catalog_service.list_categories(db_session)]
        assert names == ["general", "projects", "resources", "examples"]

    async def test_hidden_categories(self, db_session):
        await catalog_service.seed_defaults(db_session)
        await db_session.execute(
            update(Category).where(Category.category_name == "resources").values(is_visible=False)
        )
        await db_session.commit()

        visible = [c.category_name for c in await catalog_service.list_categories(db_session)]
        everything = await catalog_service.list_categories(db_session, visible_only=False)
        assert "resources" not in visible
        assert len(everything) == 4

    async def test_unknown_category(self, db_session):
        assert await catalog_service.get_category_by_name(db_session, "nope") is None


class TestItems:

    async def test_list_all_items(self, db_session):
        await catalog_service.seed_defaults(db_session)
        await db_session.commit()

        items = await catalog_service.list_items(db_session)
        assert len(items) == 4
        assert {item.category.category_name for item in items} == {
            "general", "projects", "resources", "examples"
        }

    async def test_filter_by_category(self, db_session):
        await catalog_service.seed_defaults(db_session)
        await db_session.commit()

        items = await catalog_service.list_items(db_session, "projects")
        assert [item.title for item in items] == ["Example Project"]
        assert items[0].data["tags"] == ["python", "web", "example"]

    async def test_create_item(self, db_session):
        await catalog_service.seed_defaults(db_session)
        general = await catalog_service.get_category_by_name(db_session, "general")

        item = await catalog_service.create_item(
            db_session, "Notes", general.id, data={"pinned": True}
        )
        await db_session.commit()

        assert item.id is not None
        items = await catalog_service.list_items(db_session, "general")
        assert "Notes" in [i.title for i in items]

    async def test_inactive_items_hidden(self, db_session):
        await catalog_service.seed_defaults(db_session)
        await db_session.execute(update(Item).values(is_active=False))
        await db_session.commit()

        assert await catalog_service.list_items(db_session) == []
