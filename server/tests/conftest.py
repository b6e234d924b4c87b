"""Shared pytest fixtures: in-memory settings DB and a loaded timeline."""

import sys
import os

# Add server root to path so imports work
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from database import Base
from models import ConfigStore
from timezones import TimezoneService


@pytest.fixture
def engine():
    """Create a fresh in-memory SQLite database for each test."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db(engine):
    """Provide a DB session, closed after each test."""
    Session = sessionmaker(bind=engine)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def config_store(db):
    return ConfigStore(db)


@pytest.fixture
def utc():
    return TimezoneService("UTC")


@pytest.fixture
def dublin():
    return TimezoneService("Europe/Dublin")


@pytest.fixture
def los_angeles():
    return TimezoneService("America/Los_Angeles")
