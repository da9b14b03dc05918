"""
Modèle SQLAlchemy pour le journal des générations (append-only).

Une ligne par génération, jamais modifiée. Le PDF éventuel est chargé à la demande
(deferred) pour que l'historique ne transporte pas les octets.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, LargeBinary, String, func
from sqlalchemy.orm import deferred, relationship

from cda_portal.database import Base


class Package(Base):
    __tablename__ = "generated_packages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    filename = Column(String(500), nullable=True)
    training_path = Column(String(20), nullable=True)
    generated_at = Column(DateTime, server_default=func.now())
    generated_by = Column(String(255), nullable=True)
    pdf_data = deferred(Column(LargeBinary, nullable=True))

    student = relationship("Student", back_populates="packages")
