"""
Schémas Pydantic pour les élèves et leurs certificats (écrans d'administration).
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, field_validator

from cda_portal.schemas.package import PackageHistoryItem


class CertificateResponse(BaseModel):
    id: int
    course_name: str
    subject_area: str
    cert_date: date
    status: Optional[str]
    area_index: Optional[int]

    model_config = {"from_attributes": True}


class StudentResponse(BaseModel):
    """Schéma de réponse pour un élève."""
    id: int
    name: str
    email: Optional[str]
    center: Optional[str]
    training_path: str
    path_label: str
    course_count: Optional[int]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    model_config = {"from_attributes": True}


class StudentSummary(StudentResponse):
    """Élève dans la liste d'administration, avec agrégats."""
    cert_count: int = 0
    last_generated: Optional[datetime] = None


class StudentDetail(StudentResponse):
    """Élève avec ses certificats et l'historique de ses générations."""
    certificates: List[CertificateResponse]
    history: List[PackageHistoryItem]


class BulkDeleteRequest(BaseModel):
    ids: List[int]

    @field_validator("ids")
    @classmethod
    def at_least_one_id(cls, v: List[int]) -> List[int]:
        if not v:
            raise ValueError("Au moins un identifiant est requis.")
        return v


class BulkDeleteResult(BaseModel):
    deleted: int


class StatsResponse(BaseModel):
    total_students: int
    preschool: int
    infant_toddler: int
    total_certs: int
    total_packages: int
