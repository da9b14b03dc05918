"""
Erreurs métier du portail.

Chaque erreur porte le code HTTP et le message public renvoyé au client.
Le détail technique reste dans les logs serveur.
"""

from typing import Optional


class PortalError(Exception):
    status_code = 500
    default_detail = "Une erreur interne est survenue."

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(PortalError):
    """Champ obligatoire manquant dans une soumission."""
    status_code = 422
    default_detail = "Soumission invalide."


class NotFoundError(PortalError):
    status_code = 404
    default_detail = "Ressource introuvable."


class AuthError(PortalError):
    """Lien inconnu, déjà utilisé ou expiré — toujours le même message."""
    status_code = 401
    default_detail = "Ce lien a expiré ou n'est pas valide."

    def __init__(self):
        super().__init__(None)


class ForbiddenError(PortalError):
    """Document n'appartenant pas à l'email vérifié, ou inexistant."""
    status_code = 403
    default_detail = "Accès refusé."

    def __init__(self):
        super().__init__(None)


class StorageError(PortalError):
    """Échec de transaction — tout a été annulé."""
    status_code = 500
    default_detail = "L'enregistrement a échoué. Aucune modification n'a été appliquée."
