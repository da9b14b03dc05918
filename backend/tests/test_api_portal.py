"""
Tests d'intégration API pour le portail étudiant.
POST /api/v1/auth/request
GET  /api/v1/auth/verify/{token}
GET  /api/v1/portal/pdf/{package_id}?email=
"""

from datetime import date, datetime
from unittest.mock import patch
from urllib.parse import quote

from cda_portal.exceptions import AuthError, ForbiddenError, NotFoundError
from cda_portal.schemas.package import PackageHistoryItem
from cda_portal.schemas.portal import MagicLinkDispatch, PortalResponse, PortalStudent
from cda_portal.schemas.student import CertificateResponse


# --- Helpers ---

def make_dispatch() -> MagicLinkDispatch:
    return MagicLinkDispatch(
        email="jane.doe@gmail.com",
        token="abc123",
        student_name="Jane Doe",
        link_path="/portal?token=abc123",
    )


def make_portal() -> PortalResponse:
    return PortalResponse(
        email="jane.doe@gmail.com",
        students=[PortalStudent(
            id=1,
            name="Jane Doe",
            email="jane.doe@gmail.com",
            center=None,
            training_path="PRESCHOOL",
            path_label="Preschool CDA Training",
            course_count=1,
            created_at=datetime.now(),
            updated_at=datetime.now(),
            packages=[PackageHistoryItem(
                id=1, filename="Jane_Doe.pdf", training_path="PRESCHOOL",
                generated_at=datetime.now(), generated_by="Admin", has_pdf=True,
            )],
            certificates=[CertificateResponse(
                id=1, course_name="CPR", subject_area="Health", cert_date=date(2024, 1, 10),
                status="Pass", area_index=1,
            )],
        )],
    )


# ============================================================
# POST /api/v1/auth/request
# ============================================================

def test_demande_acces_envoie_le_lien(client):
    with patch("cda_portal.routers.portal.auth_token_service.request_access") as mock_request, \
         patch("cda_portal.routers.portal.email_service.deliver_magic_link") as mock_deliver:
        mock_request.return_value = make_dispatch()

        response = client.post("/api/v1/auth/request", json={"name": "Jane", "email": "jane.doe@gmail.com"})

    assert response.status_code == 200
    assert response.json()["success"] is True
    mock_deliver.assert_called_once_with(make_dispatch())


def test_demande_acces_reponses_indistinguables(client):
    """Email inscrit, email inconnu, nom non concordant : même statut, même corps."""
    responses = []
    for dispatch, body in [
        (make_dispatch(), {"name": "Jane", "email": "jane.doe@gmail.com"}),
        (None, {"name": "Jane", "email": "unknown@gmail.com"}),
        (None, {"name": "Bob", "email": "jane.doe@gmail.com"}),
    ]:
        with patch("cda_portal.routers.portal.auth_token_service.request_access") as mock_request, \
             patch("cda_portal.routers.portal.email_service.deliver_magic_link"):
            mock_request.return_value = dispatch
            response = client.post("/api/v1/auth/request", json=body)
        responses.append((response.status_code, response.json()))

    assert responses[0] == responses[1] == responses[2]


def test_demande_acces_sans_correspondance_aucun_envoi(client):
    with patch("cda_portal.routers.portal.auth_token_service.request_access") as mock_request, \
         patch("cda_portal.routers.portal.email_service.deliver_magic_link") as mock_deliver:
        mock_request.return_value = None

        client.post("/api/v1/auth/request", json={"name": "Jane", "email": "unknown@gmail.com"})

    mock_deliver.assert_not_called()


def test_demande_acces_email_invalide(client):
    response = client.post("/api/v1/auth/request", json={"name": "Jane", "email": "pas-un-email"})
    assert response.status_code == 422


def test_demande_acces_nom_manquant(client):
    response = client.post("/api/v1/auth/request", json={"name": "  ", "email": "jane.doe@gmail.com"})
    assert response.status_code == 422


# ============================================================
# GET /api/v1/auth/verify/{token}
# ============================================================

def test_verification_succes(client):
    with patch("cda_portal.routers.portal.portal_service.open_portal") as mock:
        mock.return_value = make_portal()

        response = client.get("/api/v1/auth/verify/abc123")

    assert response.status_code == 200
    data = response.json()
    assert data["email"] == "jane.doe@gmail.com"
    assert data["students"][0]["packages"][0]["has_pdf"] is True
    assert data["students"][0]["certificates"][0]["course_name"] == "CPR"
    mock.assert_called_once()
    assert mock.call_args[0][1] == "abc123"


def test_verification_echec_message_generique(client):
    with patch("cda_portal.routers.portal.portal_service.open_portal") as mock:
        mock.side_effect = AuthError()

        response = client.get("/api/v1/auth/verify/expired")

    assert response.status_code == 401
    assert response.json() == {"detail": AuthError.default_detail}


# ============================================================
# GET /api/v1/portal/pdf/{package_id}
# ============================================================

def test_telechargement_succes(client):
    with patch("cda_portal.routers.portal.portal_service.download_document") as mock:
        mock.return_value = (b"%PDF-1.7", "Jane_Doe.pdf")

        response = client.get("/api/v1/portal/pdf/1", params={"email": "jane.doe@gmail.com"})

    assert response.status_code == 200
    assert response.content == b"%PDF-1.7"
    assert 'filename="Jane_Doe.pdf"' in response.headers["content-disposition"]
    mock.assert_called_once()
    assert mock.call_args[0][1:] == ("jane.doe@gmail.com", 1)


def test_telechargement_nom_de_fichier_non_ascii(client):
    """Un nom accentué est servi : repli ASCII et nom exact en UTF-8."""
    with patch("cda_portal.routers.portal.portal_service.download_document") as mock:
        mock.return_value = (b"%PDF-1.7", "Nguyễn_Văn_An_CDA.pdf")

        response = client.get("/api/v1/portal/pdf/1", params={"email": "jane.doe@gmail.com"})

    assert response.status_code == 200
    disposition = response.headers["content-disposition"]
    assert 'filename="Nguyen_Van_An_CDA.pdf"' in disposition
    assert "filename*=UTF-8''" + quote("Nguyễn_Văn_An_CDA.pdf", safe="") in disposition


def test_telechargement_refuse(client):
    with patch("cda_portal.routers.portal.portal_service.download_document") as mock:
        mock.side_effect = ForbiddenError()

        response = client.get("/api/v1/portal/pdf/2", params={"email": "jane.doe@gmail.com"})

    assert response.status_code == 403
    assert response.json() == {"detail": ForbiddenError.default_detail}


def test_telechargement_sans_pdf(client):
    with patch("cda_portal.routers.portal.portal_service.download_document") as mock:
        mock.side_effect = NotFoundError("Aucun PDF n'est disponible pour ce package.")

        response = client.get("/api/v1/portal/pdf/1", params={"email": "jane.doe@gmail.com"})

    assert response.status_code == 404


def test_telechargement_email_manquant(client):
    response = client.get("/api/v1/portal/pdf/1")
    assert response.status_code == 422
