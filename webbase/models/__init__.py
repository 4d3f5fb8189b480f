"""
SQLAlchemy ORM models package.

All models are imported here so that:
  1. Base.metadata knows every table before create_all() runs
  2. Other modules can import from webbase.models directly
"""

from webbase.models.user import User  # noqa: F401
from webbase.models.session import SessionRecord  # noqa: F401
from webbase.models.catalog import Category, Item  # noqa: F401
