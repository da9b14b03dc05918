"""
Modèle SQLAlchemy pour la table students.

Identité d'un élève : (name, training_path). L'unicité est garantie par l'index
students_name_path_unique, posé par la migration de déduplication sur les bases
existantes (voir services/student_registry.py).

L'élève possède ses certificats et ses packages : supprimer l'élève les supprime
dans la même transaction (cascade ORM delete-orphan).
"""

from sqlalchemy import Column, DateTime, Index, Integer, String, func
from sqlalchemy.orm import relationship

from cda_portal.database import Base

NAME_PATH_INDEX = "students_name_path_unique"

TRAINING_PATHS = {
    "PRESCHOOL": "Preschool CDA Training",
    "INFANT_TODDLER": "Infant & Toddler CDA Training",
}


class Student(Base):
    __tablename__ = "students"
    __table_args__ = (
        Index(NAME_PATH_INDEX, "name", "training_path", unique=True),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    center = Column(String(255), nullable=True)
    training_path = Column(String(20), nullable=False)  # PRESCHOOL, INFANT_TODDLER
    path_label = Column(String(100), nullable=False)
    course_count = Column(Integer, default=0)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now())

    certificates = relationship(
        "Certificate",
        back_populates="student",
        cascade="all, delete-orphan",
        order_by="Certificate.cert_date",
    )
    packages = relationship(
        "Package",
        back_populates="student",
        cascade="all, delete-orphan",
    )
