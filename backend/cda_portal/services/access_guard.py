"""
Contrôle d'accès aux documents du portail.

La propriété est recalculée à chaque téléchargement : l'email vérifié doit posséder
l'élève auquel appartient le package. Aucun jeton ni identifiant client n'est cru sur parole.
"""

import logging

from sqlalchemy.orm import Session

from cda_portal.services.package_ledger import get_package_owner
from cda_portal.services.student_registry import find_students_by_email

logger = logging.getLogger(__name__)


def authorize_download(db: Session, email: str, package_id: int) -> bool:
    """
    Retourne True si le package appartient à l'une des fiches de cet email.
    Email inconnu, package inconnu ou propriétaire différent → False, sans distinction.
    """
    owned_ids = {s.id for s in find_students_by_email(db, email)}
    if not owned_ids:
        return False

    owner_id = get_package_owner(db, package_id)
    allowed = owner_id is not None and owner_id in owned_ids
    if not allowed:
        logger.warning("Téléchargement refusé : package %s", package_id)
    return allowed
