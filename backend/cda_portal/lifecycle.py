"""
Ouverture et fermeture de la base de données, appelées par le lifespan de l'API.

Au démarrage :
  1. Créer les tables manquantes
  2. Mettre à niveau une base existante : colonne path (pre/inf) renommée en
     training_path (PRESCHOOL/INFANT_TODDLER), colonnes apparues après coup ajoutées
  3. Fusionner les doublons d'élèves historiques et poser l'index unique (no-op ensuite)
À l'arrêt : libérer le pool de connexions.
"""

import logging

from sqlalchemy import case, inspect, text, update
from sqlalchemy.orm import Session

from cda_portal.database import Base, SessionLocal, engine
from cda_portal.models.package import Package
from cda_portal.models.student import Student
from cda_portal.services.student_registry import deduplicate_students

logger = logging.getLogger(__name__)

# Colonnes absentes des premières versions du schéma
_LATE_COLUMNS = [
    Student.__table__.c.email,
    Package.__table__.c.pdf_data,
]

# Premières versions : colonne path codée pre/inf
_LEGACY_PATH_COLUMN = "path"
_LEGACY_PATH_CODES = {"pre": "PRESCHOOL", "inf": "INFANT_TODDLER"}
_TRAINING_PATH_COLUMNS = [
    Student.__table__.c.training_path,
    Package.__table__.c.training_path,
]


def _rename_legacy_path(db: Session) -> list[str]:
    """Renomme path en training_path et convertit les codes pre/inf."""
    conn = db.connection()
    inspector = inspect(conn)
    renamed = []

    for column in _TRAINING_PATH_COLUMNS:
        table = column.table
        existing = {c["name"] for c in inspector.get_columns(table.name)}
        if column.name in existing or _LEGACY_PATH_COLUMN not in existing:
            continue
        conn.execute(text(f"ALTER TABLE {table.name} RENAME COLUMN {_LEGACY_PATH_COLUMN} TO {column.name}"))
        if conn.dialect.name == "postgresql":
            # VARCHAR(10) trop court pour INFANT_TODDLER
            column_type = column.type.compile(dialect=conn.dialect)
            conn.execute(text(f"ALTER TABLE {table.name} ALTER COLUMN {column.name} TYPE {column_type}"))
        conn.execute(
            update(table).values({column.name: case(_LEGACY_PATH_CODES, value=column, else_=column)})
        )
        renamed.append(f"{table.name}.{column.name}")

    return renamed


def upgrade_schema(db: Session) -> list[str]:
    """
    Met à niveau une base existante et retourne les colonnes touchées (noms qualifiés).

    - path → training_path sur students et generated_packages, codes convertis
    - colonnes tardives ajoutées (nullable)
    """
    added = _rename_legacy_path(db)
    conn = db.connection()
    inspector = inspect(conn)

    for column in _LATE_COLUMNS:
        table = column.table.name
        existing = {c["name"] for c in inspector.get_columns(table)}
        if column.name in existing:
            continue
        column_type = column.type.compile(dialect=conn.dialect)
        conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {column.name} {column_type}"))
        added.append(f"{table}.{column.name}")

    db.commit()
    if added:
        logger.info("Colonnes mises à niveau : %s", ", ".join(added))
    return added


def open_database() -> None:
    """Prépare le schéma au démarrage de l'API."""
    import cda_portal.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        upgrade_schema(db)
        merged = deduplicate_students(db)
    finally:
        db.close()
    logger.info("Base de données prête (%d doublon(s) fusionné(s)).", merged)


def close_database() -> None:
    """Libère les connexions à l'arrêt de l'API."""
    engine.dispose()
    logger.info("Connexions à la base de données fermées.")
