"""SQLAlchemy models for persisted viewer settings."""

import datetime
from collections.abc import MutableMapping

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import Session

from database import Base


class Config(Base):
    """A single namespaced setting, e.g. ``user_info.timezone``."""

    __tablename__ = "config"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String, unique=True, nullable=False, index=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.datetime.utcnow, onupdate=datetime.datetime.utcnow)


class ConfigStore(MutableMapping):
    """Dict-like view over the Config table. Writes are committed immediately."""

    def __init__(self, db: Session):
        self.db = db

    def _row(self, key: str) -> Config | None:
        return self.db.query(Config).filter(Config.key == key).first()

    def __getitem__(self, key: str) -> str:
        row = self._row(key)
        if row is None:
            raise KeyError(key)
        return row.value

    def __setitem__(self, key: str, value: str):
        row = self._row(key)
        if row is None:
            self.db.add(Config(key=key, value=str(value)))
        else:
            row.value = str(value)
        self.db.commit()

    def __delitem__(self, key: str):
        row = self._row(key)
        if row is None:
            raise KeyError(key)
        self.db.delete(row)
        self.db.commit()

    def __iter__(self):
        keys = [row.key for row in self.db.query(Config).order_by(Config.key).all()]
        return iter(keys)

    def __len__(self) -> int:
        return self.db.query(Config).count()
