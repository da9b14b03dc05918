"""
Router d'administration des élèves.
Liste et recherche, détail (certificats + historique), suppression, statistiques.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from cda_portal.database import get_db
from cda_portal.schemas.student import (
    BulkDeleteRequest,
    BulkDeleteResult,
    StatsResponse,
    StudentDetail,
    StudentSummary,
)
from cda_portal.services import student_service

router = APIRouter(prefix="/api/v1", tags=["Élèves"])


@router.get("/stats", response_model=StatsResponse, summary="Statistiques globales")
def get_stats(db: Session = Depends(get_db)):
    """Nombre d'élèves (total et par parcours), de certificats et de packages."""
    return student_service.get_stats(db)


@router.get("/students", response_model=List[StudentSummary], summary="Lister ou rechercher les élèves")
def list_students(q: Optional[str] = None, db: Session = Depends(get_db)):
    """
    Sans `q` : tous les élèves, les plus récemment mis à jour en premier.
    Avec `q` : recherche sur le nom (insensible à la casse), triée par nom.
    """
    return student_service.list_students(db, q)


@router.get("/students/{student_id}", response_model=StudentDetail, summary="Détail d'un élève")
def get_student(student_id: int, db: Session = Depends(get_db)):
    """Retourne l'élève avec ses certificats et l'historique de ses générations."""
    student = student_service.get_student_detail(db, student_id)
    if student is None:
        raise HTTPException(status_code=404, detail="Élève introuvable.")
    return student


@router.delete("/students/{student_id}", status_code=204, summary="Supprimer un élève")
def delete_student(student_id: int, db: Session = Depends(get_db)):
    """Supprime définitivement un élève. Ses certificats et packages sont supprimés avec lui."""
    if not student_service.delete_student(db, student_id):
        raise HTTPException(status_code=404, detail="Élève introuvable.")


@router.post("/students/bulk-delete", response_model=BulkDeleteResult, summary="Supprimer plusieurs élèves")
def bulk_delete_students(data: BulkDeleteRequest, db: Session = Depends(get_db)):
    """Supprime les élèves listés. Les IDs inconnus sont ignorés."""
    return BulkDeleteResult(deleted=student_service.delete_students(db, data.ids))
