"""Persistence layer: SQLModel tables, storage interface and backends."""
