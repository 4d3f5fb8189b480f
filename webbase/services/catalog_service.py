"""
Catalog service — categories and items.

The template ships a small generic content model so projects built on it
have something to extend: categories, and items that hang off them with a
free-form JSON payload. seed_defaults() installs the starter rows and is
safe to run on every startup.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from webbase.models.catalog import Category, Item


DEFAULT_CATEGORIES = [
    ("general", "General", 0),
    ("projects", "Projects", 1),
    ("resources", "Resources", 2),
    ("examples", "Examples", 3),
]

SAMPLE_ITEMS = [
    (
        "general",
        "Welcome to webbase",
        "This is a sample item to demonstrate the generic item system.",
        {"type": "welcome", "priority": "high"},
    ),
    (
        "projects",
        "Example Project",
        "A sample project item showing how to store structured data.",
        {"status": "active", "tags": ["python", "web", "example"], "created_by": "system"},
    ),
    (
        "resources",
        "API Documentation",
        "Link to the API documentation and examples.",
        {"url": "https://fastapi.tiangolo.com/", "external": True},
    ),
    (
        "examples",
        "Database Query Example",
        "Shows how to use the flexible JSON data field.",
        {"query_type": "select", "table": "items", "complexity": "medium"},
    ),
]


async def list_categories(db: AsyncSession, visible_only: bool = True) -> list[Category]:
    """Categories ordered by display_order, then name."""
    stmt = select(Category).order_by(Category.display_order, Category.category_name)
    if visible_only:
        stmt = stmt.where(Category.is_visible.is_(True))
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_category_by_name(db: AsyncSession, category_name: str) -> Category | None:
    result = await db.execute(
        select(Category).where(Category.category_name == category_name)
    )
    return result.scalar_one_or_none()


async def list_items(db: AsyncSession, category_name: str | None = None) -> list[Item]:
    """Active items with their category loaded, newest first."""
    stmt = (
        select(Item)
        .join(Item.category)
        .where(Item.is_active.is_(True))
        .options(selectinload(Item.category))
        .order_by(Item.created_at.desc(), Item.id.desc())
    )
    if category_name is not None:
        stmt = stmt.where(Category.category_name == category_name)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def create_item(
    db: AsyncSession,
    title: str,
    category_id: int,
    description: str | None = None,
    data: dict | None = None,
) -> Item:
    item = Item(
        title=title,
        description=description,
        data=data,
        category_id=category_id,
    )
    db.add(item)
    await db.flush()
    return item


async def seed_defaults(db: AsyncSession) -> int:
    """
    Insert the default categories and one sample item per category.

    Existing categories are left alone, and sample items are only added to
    categories created by this call, so re-running is a no-op.

    Returns:
        Number of categories created.
    """
    created: dict[str, Category] = {}
    for name, display_name, order in DEFAULT_CATEGORIES:
        if await get_category_by_name(db, name) is not None:
            continue
        category = Category(category_name=name, display_name=display_name, display_order=order)
        db.add(category)
        created[name] = category
    await db.flush()

    for category_name, title, description, data in SAMPLE_ITEMS:
        category = created.get(category_name)
        if category is not None:
            await create_item(db, title, category.id, description, data)

    return len(created)
