"""
Registre des élèves : une seule fiche par (nom, parcours).

- resolve_student : INSERT ... ON CONFLICT DO UPDATE en une seule requête.
  Deux soumissions simultanées pour le même élève convergent sur la même ligne,
  sans lecture préalable.
- deduplicate_students : migration unique des doublons historiques, puis pose
  de l'index unique. Sans effet une fois l'index présent (appelée à chaque démarrage).
- find_students_by_email : toutes les fiches d'une adresse, un élève pouvant
  suivre les deux parcours.
"""

import logging
from typing import Optional

from sqlalchemy import case, delete, func, inspect, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from cda_portal.exceptions import StorageError
from cda_portal.models.certificate import Certificate
from cda_portal.models.package import Package
from cda_portal.models.student import NAME_PATH_INDEX, Student

logger = logging.getLogger(__name__)

# Dialectes supportant ON CONFLICT ... DO UPDATE
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _upsert_insert(db: Session):
    dialect = db.get_bind().dialect.name
    try:
        return _UPSERT_INSERTS[dialect]
    except KeyError:
        raise StorageError(f"Dialecte non supporté pour l'upsert des élèves : {dialect}")


def resolve_student(
    db: Session,
    name: str,
    training_path: str,
    path_label: str,
    course_count: int,
    email: Optional[str] = None,
    center: Optional[str] = None,
) -> int:
    """
    Retourne l'ID de l'élève (name, training_path), créé ou mis à jour.

    En cas de conflit sur l'index unique :
    - email et center ne sont remplacés que si la nouvelle valeur est non nulle
    - course_count est écrasé
    - updated_at est rafraîchi
    Ne committe pas : l'appelant maîtrise la transaction.
    """
    insert = _upsert_insert(db)
    stmt = insert(Student).values(
        name=name,
        email=email or None,
        center=center or None,
        training_path=training_path,
        path_label=path_label,
        course_count=course_count,
        updated_at=func.now(),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[Student.name, Student.training_path],
        set_={
            "updated_at": func.now(),
            "course_count": stmt.excluded.course_count,
            "email": func.coalesce(stmt.excluded.email, Student.email),
            "center": func.coalesce(stmt.excluded.center, Student.center),
        },
    ).returning(Student.id)

    student_id = db.execute(stmt).scalar_one()
    logger.info("Élève résolu : %s (%s) → id %s", name, training_path, student_id)
    return student_id


def find_students_by_email(db: Session, email: str) -> list[Student]:
    """
    Retourne les fiches dont l'email correspond exactement (insensible à la casse),
    triées par parcours puis par ID.
    """
    if not email or not email.strip():
        return []
    return list(
        db.execute(
            select(Student)
            .where(func.lower(Student.email) == email.strip().lower())
            .order_by(Student.training_path, Student.id)
        ).scalars().all()
    )


def _name_path_index_exists(db: Session) -> bool:
    """Vérifie la présence de l'index unique (ou d'une contrainte du même nom, posée par l'ancien schéma)."""
    inspector = inspect(db.connection())
    names = {ix["name"] for ix in inspector.get_indexes(Student.__tablename__)}
    names |= {uc["name"] for uc in inspector.get_unique_constraints(Student.__tablename__)}
    return NAME_PATH_INDEX in names


def deduplicate_students(db: Session) -> int:
    """
    Fusionne les doublons historiques (name, training_path) puis pose l'index unique.

    Passe déclarative :
    1. Classer les fiches de chaque groupe par updated_at DESC, id DESC
    2. Rang 1 = survivant ; les autres sont perdants
    3. Re-rattacher en bloc certificats et packages des perdants à leur survivant
    4. Supprimer les perdants en bloc
    5. Créer l'index students_name_path_unique

    Retourne le nombre de fiches supprimées (0 si l'index existait déjà).
    """
    if _name_path_index_exists(db):
        return 0

    ranked = select(
        Student.id.label("id"),
        Student.name.label("name"),
        Student.training_path.label("training_path"),
        func.row_number().over(
            partition_by=(Student.name, Student.training_path),
            order_by=(Student.updated_at.desc(), Student.id.desc()),
        ).label("rank"),
    ).subquery()
    survivors = select(ranked).where(ranked.c.rank == 1).subquery()
    losers = select(ranked).where(ranked.c.rank > 1).subquery()

    pairs = db.execute(
        select(losers.c.id, survivors.c.id)
        .join(
            survivors,
            (survivors.c.name == losers.c.name)
            & (survivors.c.training_path == losers.c.training_path),
        )
    ).all()
    survivor_of = {loser_id: survivor_id for loser_id, survivor_id in pairs}

    if survivor_of:
        loser_ids = list(survivor_of)
        for child in (Certificate, Package):
            db.execute(
                update(child)
                .where(child.student_id.in_(loser_ids))
                .values(student_id=case(survivor_of, value=child.student_id))
                .execution_options(synchronize_session=False)
            )
        db.execute(
            delete(Student)
            .where(Student.id.in_(loser_ids))
            .execution_options(synchronize_session=False)
        )

    index = next(ix for ix in Student.__table__.indexes if ix.name == NAME_PATH_INDEX)
    index.create(db.connection())
    db.commit()

    logger.info(
        "Déduplication des élèves : %d doublon(s) fusionné(s) dans %d fiche(s), index %s posé",
        len(survivor_of), len(set(survivor_of.values())), NAME_PATH_INDEX,
    )
    return len(survivor_of)
