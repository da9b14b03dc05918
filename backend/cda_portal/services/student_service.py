"""
Service d'administration des élèves : liste, recherche, détail, suppression, statistiques.

La suppression d'un élève passe par l'ORM : ses certificats et packages
sont supprimés dans la même transaction (cascade delete-orphan).
"""

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from cda_portal.models.certificate import Certificate
from cda_portal.models.package import Package
from cda_portal.models.student import Student
from cda_portal.schemas.student import (
    CertificateResponse,
    StatsResponse,
    StudentDetail,
    StudentResponse,
    StudentSummary,
)
from cda_portal.services.certificate_set import list_certificates
from cda_portal.services.package_ledger import get_history

logger = logging.getLogger(__name__)


def list_students(db: Session, query: Optional[str] = None) -> list[StudentSummary]:
    """
    Sans recherche : tous les élèves, les plus récemment mis à jour en premier.
    Avec recherche : nom contenant le texte (insensible à la casse), triés par nom.
    Chaque élève est accompagné de son nombre de certificats et de sa dernière génération.
    """
    cert_counts = (
        select(Certificate.student_id, func.count(Certificate.id).label("cert_count"))
        .group_by(Certificate.student_id)
        .subquery()
    )
    last_generated = (
        select(Package.student_id, func.max(Package.generated_at).label("last_generated"))
        .group_by(Package.student_id)
        .subquery()
    )

    stmt = (
        select(Student, cert_counts.c.cert_count, last_generated.c.last_generated)
        .outerjoin(cert_counts, cert_counts.c.student_id == Student.id)
        .outerjoin(last_generated, last_generated.c.student_id == Student.id)
    )
    if query and query.strip():
        stmt = stmt.where(func.lower(Student.name).contains(query.strip().lower())).order_by(Student.name)
    else:
        stmt = stmt.order_by(Student.updated_at.desc(), Student.id.desc())

    return [
        StudentSummary(
            **StudentResponse.model_validate(student).model_dump(),
            cert_count=cert_count or 0,
            last_generated=last,
        )
        for student, cert_count, last in db.execute(stmt).all()
    ]


def get_student_detail(db: Session, student_id: int) -> Optional[StudentDetail]:
    """Retourne l'élève avec ses certificats et son historique, ou None s'il n'existe pas."""
    student = db.get(Student, student_id)
    if student is None:
        return None

    return StudentDetail(
        **StudentResponse.model_validate(student).model_dump(),
        certificates=[CertificateResponse.model_validate(c) for c in list_certificates(db, student_id)],
        history=get_history(db, student_id),
    )


def delete_student(db: Session, student_id: int) -> bool:
    """
    Supprime définitivement un élève, ses certificats et ses packages.
    Retourne True si supprimé, False si non trouvé.
    """
    student = db.get(Student, student_id)
    if student is None:
        return False

    db.delete(student)
    db.commit()
    logger.info("Élève %s supprimé avec ses certificats et packages", student_id)
    return True


def delete_students(db: Session, student_ids: list[int]) -> int:
    """Suppression groupée. Les IDs inconnus sont ignorés. Retourne le nombre d'élèves supprimés."""
    students = db.execute(
        select(Student).where(Student.id.in_(set(student_ids)))
    ).scalars().all()

    for student in students:
        db.delete(student)
    db.commit()

    logger.info("Suppression groupée : %d élève(s) supprimé(s) sur %d demandé(s)", len(students), len(student_ids))
    return len(students)


def get_stats(db: Session) -> StatsResponse:
    """Totaux affichés sur le tableau de bord d'administration."""
    def count(stmt) -> int:
        return db.execute(stmt).scalar() or 0

    return StatsResponse(
        total_students=count(select(func.count(Student.id))),
        preschool=count(select(func.count(Student.id)).where(Student.training_path == "PRESCHOOL")),
        infant_toddler=count(select(func.count(Student.id)).where(Student.training_path == "INFANT_TODDLER")),
        total_certs=count(select(func.count(Certificate.id))),
        total_packages=count(select(func.count(Package.id))),
    )
