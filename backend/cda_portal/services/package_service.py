"""
Service d'enregistrement d'une génération de package.

Flux, dans une seule transaction :
  1. Résoudre la fiche élève (upsert sur name + training_path)
  2. Aligner les certificats sur la liste soumise (remplacement seulement si elle diffère)
  3. Ajouter l'entrée au journal des générations (avec le PDF éventuel)
Toute erreur annule les trois étapes.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cda_portal.exceptions import PortalError, StorageError, ValidationError
from cda_portal.schemas.package import PackageCreate, PackageSaved
from cda_portal.services.certificate_set import reconcile_certificates
from cda_portal.services.package_ledger import append_package
from cda_portal.services.student_registry import resolve_student

logger = logging.getLogger(__name__)


def save_student_package(db: Session, data: PackageCreate) -> PackageSaved:
    """
    Enregistre une génération : élève, certificats et entrée de journal.

    Lève ValidationError si la soumission est incomplète,
    StorageError si la transaction échoue (rollback complet).
    """
    if not data.courses:
        raise ValidationError("Au moins un cours est requis.")

    try:
        student_id = resolve_student(
            db,
            name=data.name,
            training_path=data.training_path,
            path_label=data.path_label,
            course_count=len(data.courses),
            email=data.email,
            center=data.center,
        )
        reconcile_certificates(db, student_id, data.courses)
        package_id = append_package(
            db,
            student_id=student_id,
            filename=data.filename,
            training_path=data.training_path,
            generated_by=data.generated_by,
            pdf_data=data.pdf_bytes(),
        )
        db.commit()
    except PortalError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Échec de l'enregistrement du package pour %s : %s", data.name, exc, exc_info=True)
        raise StorageError() from exc

    logger.info(
        "Génération enregistrée : élève %s, package %s (%d cours)",
        student_id, package_id, len(data.courses),
    )
    return PackageSaved(student_id=student_id, package_id=package_id)
