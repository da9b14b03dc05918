"""
Liens magiques du portail étudiant : émission et vérification de jetons à usage unique.

Cycle de vie d'un jeton : ÉMIS → {VÉRIFIÉ, EXPIRÉ}.
- Émission : 48 octets aléatoires (secrets), expiration à 30 minutes.
  Les jetons encore inutilisés de la même adresse sont invalidés avant l'insertion,
  seul le lien le plus récent peut donc aboutir.
- Vérification : un seul UPDATE conditionnel (inutilisé ET non expiré) marque le jeton
  utilisé ; sous vérifications concurrentes, une seule réussit.
  Jeton inconnu, déjà utilisé ou expiré → même AuthError, sans distinction.

Anti-énumération : request_access ne révèle jamais si l'adresse est inscrite.
Adresse inconnue ou nom non concordant → aucun jeton, même réponse que le cas nominal.
"""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from cda_portal.config import settings
from cda_portal.exceptions import AuthError
from cda_portal.models.magic_token import MagicToken
from cda_portal.models.student import Student
from cda_portal.schemas.portal import MagicLinkDispatch
from cda_portal.services.student_registry import find_students_by_email

logger = logging.getLogger(__name__)

PORTAL_PATH = "/portal"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _hash(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def portal_link_path(token: str) -> str:
    """Chemin relatif du lien magique (le domaine est ajouté par le service d'email)."""
    return f"{PORTAL_PATH}?token={token}"


def _first_token(name: str) -> str:
    parts = name.strip().lower().split()
    return parts[0] if parts else ""


def name_matches(supplied: str, recorded: str) -> bool:
    """
    Concordance souple du nom saisi avec le nom enregistré.

    Insensible à la casse : le premier mot de l'un doit être contenu dans l'autre,
    dans un sens ou dans l'autre.
    """
    supplied_first = _first_token(supplied or "")
    recorded_first = _first_token(recorded or "")
    if not supplied_first or not recorded_first:
        return False
    return supplied_first in recorded.lower() or recorded_first in supplied.lower()


def issue_token(db: Session, email: str) -> str:
    """
    Émet un nouveau jeton pour l'adresse et retourne sa valeur en clair.

    Les jetons inutilisés précédents de l'adresse sont marqués utilisés avant l'insertion.
    Ces deux requêtes ne sont pas atomiques vis-à-vis d'une émission concurrente :
    deux jetons peuvent coexister brièvement, un seul pourra être consommé chacun.
    """
    email = email.strip().lower()

    db.execute(
        update(MagicToken)
        .where(MagicToken.email == email, MagicToken.used.is_(False))
        .values(used=True)
        .execution_options(synchronize_session=False)
    )

    token = secrets.token_hex(settings.MAGIC_TOKEN_BYTES)
    db.add(MagicToken(
        email=email,
        token_hash=_hash(token),
        expires_at=_now() + timedelta(minutes=settings.MAGIC_LINK_EXPIRE_MINUTES),
        used=False,
    ))
    db.commit()

    logger.info("Lien d'accès émis (expire dans %d min)", settings.MAGIC_LINK_EXPIRE_MINUTES)
    return token


def verify_token(db: Session, token: str) -> str:
    """
    Consomme le jeton et retourne l'adresse email associée.

    Lève AuthError si le jeton est inconnu, déjà utilisé ou expiré.
    """
    if not token:
        raise AuthError()

    token_hash = _hash(token)
    result = db.execute(
        update(MagicToken)
        .where(
            MagicToken.token_hash == token_hash,
            MagicToken.used.is_(False),
            MagicToken.expires_at > _now(),
        )
        .values(used=True)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        logger.info("Vérification de lien refusée")
        raise AuthError()

    email = db.execute(
        select(MagicToken.email).where(MagicToken.token_hash == token_hash)
    ).scalar_one()
    db.commit()

    logger.info("Lien d'accès consommé")
    return email


def _matching_student(students: list[Student], name: str) -> Optional[Student]:
    return next((s for s in students if name_matches(name, s.name)), None)


def request_access(db: Session, name: str, email: str) -> Optional[MagicLinkDispatch]:
    """
    Porte d'entrée anti-énumération avant l'émission d'un lien.

    Retourne le lien à envoyer si l'adresse est inscrite ET que le nom concorde,
    sinon None. L'appelant répond de la même façon dans les deux cas.
    """
    students = find_students_by_email(db, email)
    student = _matching_student(students, name)
    if student is None:
        logger.debug("Demande d'accès sans suite (adresse inconnue ou nom non concordant)")
        return None

    token = issue_token(db, email)
    return MagicLinkDispatch(
        email=email.strip().lower(),
        token=token,
        student_name=student.name,
        link_path=portal_link_path(token),
    )
