"""
Journal append-only des générations de packages.

Chaque génération ajoute une ligne ; aucune ligne n'est jamais modifiée.
Les octets du PDF, s'ils sont fournis, sont conservés pour qu'un téléchargement
ultérieur ne nécessite pas de regénérer le document.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from cda_portal.config import settings
from cda_portal.models.package import Package
from cda_portal.schemas.package import PackageHistoryItem

logger = logging.getLogger(__name__)


def append_package(
    db: Session,
    student_id: int,
    filename: str,
    training_path: str,
    generated_by: Optional[str] = None,
    pdf_data: Optional[bytes] = None,
) -> int:
    """Ajoute une entrée au journal et retourne son ID. Ne committe pas."""
    package = Package(
        student_id=student_id,
        filename=filename,
        training_path=training_path,
        generated_by=generated_by or settings.DEFAULT_GENERATED_BY,
        pdf_data=pdf_data,
    )
    db.add(package)
    db.flush()  # obtenir l'ID sans committer

    logger.info(
        "Package %s journalisé pour l'élève %s (%s, pdf=%s)",
        package.id, student_id, filename, "oui" if pdf_data else "non",
    )
    return package.id


def get_history(db: Session, student_id: int) -> list[PackageHistoryItem]:
    """
    Retourne l'historique des générations de l'élève, de la plus récente à la plus ancienne.
    Métadonnées uniquement : les octets du PDF ne sont pas chargés.
    """
    rows = db.execute(
        select(
            Package.id,
            Package.filename,
            Package.training_path,
            Package.generated_at,
            Package.generated_by,
            Package.pdf_data.is_not(None).label("has_pdf"),
        )
        .where(Package.student_id == student_id)
        .order_by(Package.generated_at.desc(), Package.id.desc())
    ).all()

    return [
        PackageHistoryItem(
            id=row.id,
            filename=row.filename,
            training_path=row.training_path,
            generated_at=row.generated_at,
            generated_by=row.generated_by,
            has_pdf=bool(row.has_pdf),
        )
        for row in rows
    ]


def fetch_payload(db: Session, package_id: int) -> Optional[tuple[bytes, str]]:
    """Retourne (octets, nom de fichier) du PDF stocké, ou None si absent."""
    row = db.execute(
        select(Package.pdf_data, Package.filename).where(Package.id == package_id)
    ).first()

    if row is None or row.pdf_data is None:
        return None
    return bytes(row.pdf_data), row.filename or f"package_{package_id}.pdf"


def get_package_owner(db: Session, package_id: int) -> Optional[int]:
    """Retourne l'ID de l'élève propriétaire du package, ou None s'il n'existe pas."""
    return db.execute(
        select(Package.student_id).where(Package.id == package_id)
    ).scalar()
