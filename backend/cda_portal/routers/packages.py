"""
Router pour les générations de packages (côté administration).
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from cda_portal.database import get_db
from cda_portal.responses import pdf_response
from cda_portal.schemas.package import PackageCreate, PackageSaved
from cda_portal.services import package_ledger, package_service

router = APIRouter(prefix="/api/v1/packages", tags=["Packages"])


@router.post("", response_model=PackageSaved, status_code=201,
             summary="Enregistrer une génération de package")
def save_package(data: PackageCreate, db: Session = Depends(get_db)):
    """
    Enregistre une génération pour un élève, dans une seule transaction :
    - création ou mise à jour de la fiche (nom + parcours)
    - remplacement des certificats si la liste de cours a changé
    - ajout d'une entrée au journal, avec le PDF s'il est fourni (pdf_base64)

    Re-soumettre la même liste ne crée ni nouvel élève ni nouveaux certificats,
    seulement une nouvelle entrée de journal.
    """
    return package_service.save_student_package(db, data)


@router.get("/{package_id}/pdf", summary="Télécharger le PDF d'un package")
def download_package_pdf(package_id: int, db: Session = Depends(get_db)):
    """Retourne le PDF stocké pour ce package (administration)."""
    payload = package_ledger.fetch_payload(db, package_id)
    if payload is None:
        raise HTTPException(status_code=404, detail="Aucun PDF n'est disponible pour ce package.")

    return pdf_response(*payload)
