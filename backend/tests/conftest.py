"""
Configuration partagée pour tous les tests.

- client : override de get_db par un MagicMock, aucune connexion à PostgreSQL,
  démarrage/arrêt de la base neutralisés.
- db : session sur une base SQLite en mémoire, pour exercer les vraies requêtes
  (upsert, UPDATE conditionnels, déduplication).
"""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import cda_portal.models  # noqa: F401
from cda_portal.database import Base, get_db
from cda_portal.main import app
from cda_portal.models.student import NAME_PATH_INDEX


@pytest.fixture
def client():
    """Client HTTP de test avec la BDD mockée."""
    mock_db = MagicMock()
    app.dependency_overrides[get_db] = lambda: mock_db
    with patch("cda_portal.main.open_database"), patch("cda_portal.main.close_database"):
        with TestClient(app) as c:
            yield c
    app.dependency_overrides.clear()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    """Session SQLite en mémoire, schéma à jour."""
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def legacy_db(engine):
    """Session sur une base antérieure à l'index unique (name, training_path)."""
    with engine.begin() as conn:
        conn.execute(text(f"DROP INDEX {NAME_PATH_INDEX}"))
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()

