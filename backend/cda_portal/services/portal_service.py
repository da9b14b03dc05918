"""
Service du portail étudiant : contenu affiché après vérification et téléchargement.
"""

import logging

from sqlalchemy.orm import Session

from cda_portal.exceptions import ForbiddenError, NotFoundError
from cda_portal.schemas.portal import PortalResponse, PortalStudent
from cda_portal.schemas.student import CertificateResponse, StudentResponse
from cda_portal.services.access_guard import authorize_download
from cda_portal.services.auth_token_service import verify_token
from cda_portal.services.certificate_set import list_certificates
from cda_portal.services.package_ledger import fetch_payload, get_history
from cda_portal.services.student_registry import find_students_by_email

logger = logging.getLogger(__name__)


def open_portal(db: Session, token: str) -> PortalResponse:
    """
    Consomme le lien magique et retourne, pour chaque fiche de l'email,
    l'élève, ses packages et ses certificats.
    Lève AuthError si le lien n'est pas valide.
    """
    email = verify_token(db, token)

    students = []
    for student in find_students_by_email(db, email):
        base = StudentResponse.model_validate(student)
        students.append(PortalStudent(
            **base.model_dump(),
            packages=get_history(db, student.id),
            certificates=[
                CertificateResponse.model_validate(c) for c in list_certificates(db, student.id)
            ],
        ))

    return PortalResponse(email=email, students=students)


def download_document(db: Session, email: str, package_id: int) -> tuple[bytes, str]:
    """
    Retourne (octets, nom de fichier) du PDF si l'email en est propriétaire.

    Lève ForbiddenError pour tout refus (package inconnu compris),
    NotFoundError si le package autorisé n'a pas de PDF stocké.
    """
    if not authorize_download(db, email, package_id):
        raise ForbiddenError()

    payload = fetch_payload(db, package_id)
    if payload is None:
        raise NotFoundError("Aucun PDF n'est disponible pour ce package.")
    return payload
