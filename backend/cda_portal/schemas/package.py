"""
Schémas Pydantic pour la soumission d'une génération de package et le journal.
"""

import base64
import binascii
from datetime import date as date_type, datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, field_validator, model_validator

from cda_portal.models.student import TRAINING_PATHS


class CourseEntry(BaseModel):
    """Un cours validé tel que saisi dans la soumission."""
    course: str
    subject_area: str
    date: date_type
    status: str = "Pass"
    area_index: Optional[int] = None

    @field_validator("course", "subject_area")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le champ ne peut pas être vide.")
        return v.strip()


class PackageCreate(BaseModel):
    """Corps de requête POST /packages — une génération de package pour un élève."""
    name: str
    training_path: str  # PRESCHOOL, INFANT_TODDLER
    path_label: Optional[str] = None
    center: Optional[str] = None
    email: Optional[EmailStr] = None
    courses: List[CourseEntry]
    filename: str
    generated_by: Optional[str] = None
    pdf_base64: Optional[str] = None

    @field_validator("name", "filename")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le champ ne peut pas être vide.")
        return v.strip()

    @field_validator("training_path")
    @classmethod
    def valid_training_path(cls, v: str) -> str:
        if v not in TRAINING_PATHS:
            raise ValueError(f"Parcours invalide. Valeurs acceptées : {set(TRAINING_PATHS)}")
        return v

    @field_validator("center", "generated_by")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v and v.strip() else None

    @field_validator("courses")
    @classmethod
    def at_least_one_course(cls, v: List[CourseEntry]) -> List[CourseEntry]:
        if not v:
            raise ValueError("Au moins un cours est requis.")
        return v

    @field_validator("pdf_base64")
    @classmethod
    def valid_base64(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        try:
            base64.b64decode(v, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("Le PDF doit être encodé en base64.")
        return v

    @model_validator(mode="after")
    def default_path_label(self) -> "PackageCreate":
        if not self.path_label or not self.path_label.strip():
            self.path_label = TRAINING_PATHS[self.training_path]
        return self

    def pdf_bytes(self) -> Optional[bytes]:
        """Octets du document rendu, ou None si la soumission n'en contient pas."""
        return base64.b64decode(self.pdf_base64) if self.pdf_base64 else None


class PackageSaved(BaseModel):
    """Réponse après enregistrement d'une génération."""
    success: bool = True
    student_id: int
    package_id: int


class PackageHistoryItem(BaseModel):
    """Entrée du journal des générations (métadonnées seulement)."""
    id: int
    filename: Optional[str]
    training_path: Optional[str]
    generated_at: Optional[datetime]
    generated_by: Optional[str]
    has_pdf: bool = False

    model_config = {"from_attributes": True}
