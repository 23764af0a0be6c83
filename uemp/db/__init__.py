"""Database package — declarative base shared by ORM models and Alembic."""
