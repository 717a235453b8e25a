from sqlalchemy import Column, String, Text
from .base import Base, TimestampMixin


class StorageEntry(Base, TimestampMixin):
    """Key/value blob store. The whole patient registry lives under one key."""
    __tablename__ = "storage_entries"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
