"""
Jeu de certificats faisant autorité pour un élève.

À chaque génération, la liste entrante remplace entièrement la liste stockée,
sauf si les deux sont identiques (même signature) : dans ce cas, aucune écriture.
"""

import logging
from collections.abc import Iterable

from sqlalchemy import delete, insert, select
from sqlalchemy.orm import Session

from cda_portal.models.certificate import Certificate
from cda_portal.schemas.package import CourseEntry

logger = logging.getLogger(__name__)


def _signature(rows: Iterable[tuple]) -> list[tuple]:
    """Signature indépendante de l'ordre : (cours, date ISO, statut) triés."""
    return sorted((str(course), cert_date.isoformat(), str(status)) for course, cert_date, status in rows)


def reconcile_certificates(db: Session, student_id: int, courses: list[CourseEntry]) -> bool:
    """
    Aligne les certificats stockés de l'élève sur la liste soumise.

    - Signatures identiques → aucune écriture (re-soumission sans changement)
    - Signatures différentes → DELETE de toutes les lignes puis INSERT en bloc

    Ne committe pas : s'exécute dans la transaction de l'appelant.
    Retourne True si les certificats ont été remplacés.
    """
    stored = db.execute(
        select(Certificate.course_name, Certificate.cert_date, Certificate.status)
        .where(Certificate.student_id == student_id)
    ).all()
    incoming = [(c.course, c.date, c.status) for c in courses]

    if _signature(stored) == _signature(incoming):
        logger.debug("Certificats inchangés pour l'élève %s", student_id)
        return False

    db.execute(delete(Certificate).where(Certificate.student_id == student_id))
    if courses:
        db.execute(insert(Certificate), [
            {
                "student_id": student_id,
                "course_name": c.course,
                "subject_area": c.subject_area,
                "cert_date": c.date,
                "status": c.status,
                "area_index": c.area_index,
            }
            for c in courses
        ])

    logger.info(
        "Certificats remplacés pour l'élève %s : %d → %d", student_id, len(stored), len(courses)
    )
    return True


def list_certificates(db: Session, student_id: int) -> list[Certificate]:
    """Retourne les certificats de l'élève par date de certification croissante."""
    return list(
        db.execute(
            select(Certificate)
            .where(Certificate.student_id == student_id)
            .order_by(Certificate.cert_date, Certificate.id)
        ).scalars().all()
    )
