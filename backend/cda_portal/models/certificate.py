"""
Modèle SQLAlchemy pour les certificats d'un élève.
Le jeu complet d'un élève est toujours remplacé en bloc, jamais modifié ligne à ligne.
"""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from cda_portal.database import Base


class Certificate(Base):
    __tablename__ = "certificates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    course_name = Column(String(500), nullable=False)
    subject_area = Column(String(500), nullable=False)
    cert_date = Column(Date, nullable=False)
    status = Column(String(50), default="Pass")
    area_index = Column(Integer, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    student = relationship("Student", back_populates="certificates")
