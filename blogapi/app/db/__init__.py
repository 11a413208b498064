"""Database layer: ORM models, async engine/session helpers and CRUD."""
