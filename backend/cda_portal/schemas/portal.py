"""
Schémas Pydantic pour le portail étudiant (lien magique et téléchargements).
"""

from typing import List

from pydantic import BaseModel, EmailStr, field_validator

from cda_portal.schemas.package import PackageHistoryItem
from cda_portal.schemas.student import CertificateResponse, StudentResponse

ACCESS_ACKNOWLEDGEMENT = (
    "Si votre adresse figure dans nos dossiers, un lien d'accès sécurisé vient de vous être envoyé."
)


class AccessRequest(BaseModel):
    """Demande de lien d'accès saisie par l'élève."""
    name: str
    email: EmailStr

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le nom est obligatoire.")
        return v.strip()


class AccessAcknowledgement(BaseModel):
    """Réponse identique que l'email soit connu ou non."""
    success: bool = True
    message: str = ACCESS_ACKNOWLEDGEMENT


class MagicLinkDispatch(BaseModel):
    """Lien à remettre au service d'envoi d'emails après émission d'un jeton."""
    email: str
    token: str
    student_name: str
    link_path: str


class PortalStudent(StudentResponse):
    packages: List[PackageHistoryItem]
    certificates: List[CertificateResponse]


class PortalResponse(BaseModel):
    """Contenu du portail après vérification du lien."""
    email: str
    students: List[PortalStudent]
