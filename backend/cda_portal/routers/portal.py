"""
Router du portail étudiant : lien magique et téléchargement des documents.

POST /auth/request répond toujours la même chose, que l'adresse soit inscrite ou non.
L'email est envoyé en tâche de fond, après la réponse.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from cda_portal.database import get_db
from cda_portal.responses import pdf_response
from cda_portal.schemas.portal import AccessAcknowledgement, AccessRequest, PortalResponse
from cda_portal.services import auth_token_service, email_service, portal_service

router = APIRouter(prefix="/api/v1", tags=["Portail étudiant"])


@router.post("/auth/request", response_model=AccessAcknowledgement, summary="Demander un lien d'accès")
def request_access(data: AccessRequest, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    """
    Envoie un lien d'accès à usage unique si l'email est inscrit et que le nom concorde.
    La réponse est identique dans tous les cas (pas d'énumération des adresses).
    """
    dispatch = auth_token_service.request_access(db, data.name, data.email)
    if dispatch is not None:
        background_tasks.add_task(email_service.deliver_magic_link, dispatch)
    return AccessAcknowledgement()


@router.get("/auth/verify/{token}", response_model=PortalResponse, summary="Vérifier un lien d'accès")
def verify_access(token: str, db: Session = Depends(get_db)):
    """
    Consomme le lien et retourne les fiches de l'élève avec packages et certificats.
    Lien inconnu, déjà utilisé ou expiré → 401 avec un message unique.
    """
    return portal_service.open_portal(db, token)


@router.get("/portal/pdf/{package_id}", summary="Télécharger un document du portail")
def download_portal_pdf(package_id: int, email: str = Query(...), db: Session = Depends(get_db)):
    """
    Retourne le PDF si le package appartient à l'une des fiches de cet email.
    Tout refus (package inconnu, autre propriétaire, email inconnu) → 403 générique.
    """
    pdf_bytes, filename = portal_service.download_document(db, email, package_id)
    return pdf_response(pdf_bytes, filename)
