from sqlalchemy import Column, String, Text

from homebook.db import Base


class KeyValue(Base):
    """SQLAlchemy model for one entry of the key-value backing store."""
    __tablename__ = "kv_store"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
