"""
Modèle SQLAlchemy pour les liens magiques du portail étudiant.

Seule l'empreinte SHA-256 du jeton est stockée ; la valeur en clair ne quitte
le serveur que dans l'email envoyé à l'élève.
"""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func

from cda_portal.database import Base


class MagicToken(Base):
    __tablename__ = "magic_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, index=True)  # toujours en minuscules
    token_hash = Column(String(64), unique=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
