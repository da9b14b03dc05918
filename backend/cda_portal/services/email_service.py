"""
Service d'envoi d'emails SMTP pour les liens d'accès au portail étudiant.

Le corps HTML contient le lien magique et, en pièce jointe inline (Content-ID),
un QR code du même lien pour l'ouvrir depuis un téléphone.
"""

import html
import io
import logging
import smtplib
from email.mime.image import MIMEImage
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr

import qrcode

from cda_portal.config import settings
from cda_portal.schemas.portal import MagicLinkDispatch
from cda_portal.services.auth_token_service import portal_link_path

logger = logging.getLogger(__name__)


def generate_qr_image(data: str) -> bytes:
    """Génère une image PNG du QR code encodant la donnée fournie."""
    qr = qrcode.QRCode(version=None, box_size=8, border=4)
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def mask_email(email: str) -> str:
    """Adresse masquée pour les logs : j***@gmail.com."""
    local, _, domain = (email or "").partition("@")
    return f"{local[:1]}***@{domain}" if domain else "***"


def build_magic_link(token: str) -> str:
    """Lien absolu vers le portail, à partir de APP_URL."""
    return settings.APP_URL.rstrip("/") + portal_link_path(token)


def send_magic_link_email(to_email: str, token: str, student_name: str) -> None:
    """
    Envoie le lien d'accès au portail à l'élève.
    Lève une exception en cas d'échec SMTP.
    """
    link = build_magic_link(token)
    first_name = student_name.split()[0] if student_name and student_name.strip() else "there"
    # Le nom vient de la saisie administrateur
    safe_first_name = html.escape(first_name)
    safe_from_name = html.escape(settings.SMTP_FROM_NAME)
    safe_link = html.escape(link, quote=True)

    msg = MIMEMultipart("related")
    msg["From"] = formataddr((settings.SMTP_FROM_NAME, settings.SMTP_FROM))
    msg["To"] = to_email
    msg["Reply-To"] = settings.SMTP_FROM
    msg["Subject"] = "Your CDA Training Certificates - Access Link"

    html_content = f"""
    <html>
      <body style="font-family: 'Segoe UI', Arial, sans-serif; color: #1a2744; max-width: 600px; margin: auto;">
        <h2 style="color: #c9a84c;">{safe_from_name}</h2>
        <p>Hi {safe_first_name},</p>
        <p>
          Here is your secure link to access your CDA training certificates and transcript.
          Click the button below to view and download your documents.
        </p>
        <p style="text-align: center; margin: 24px 0;">
          <a href="{safe_link}"
             style="background: #c9a84c; color: #1a2744; text-decoration: none; font-weight: bold;
                    padding: 14px 36px; border-radius: 8px;">
            Access My Certificates
          </a>
        </p>
        <div style="text-align: center; margin: 24px 0;">
          <img src="cid:portallink" alt="Portal link QR code" style="width: 180px; height: 180px;" />
        </div>
        <p style="font-size: 13px; color: #6b7280;">
          <strong>This link expires in {settings.MAGIC_LINK_EXPIRE_MINUTES} minutes</strong> and can only be used once.
          If you need a new link, return to the portal and request another.
        </p>
        <hr style="border: none; border-top: 1px solid #eee;" />
        <p style="font-size: 12px; color: #9ca3af;">
          If you did not request this link, you can safely ignore this email.
        </p>
      </body>
    </html>
    """

    html_part = MIMEMultipart("alternative")
    html_part.attach(MIMEText(html_content, "html", "utf-8"))
    msg.attach(html_part)

    # QR code du lien, référencé par cid:portallink dans le HTML
    qr_attachment = MIMEImage(generate_qr_image(link), name="portal-link.png")
    qr_attachment.add_header("Content-ID", "<portallink>")
    qr_attachment.add_header("Content-Disposition", "inline", filename="portal-link.png")
    msg.attach(qr_attachment)

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
        if settings.SMTP_USE_TLS:
            server.starttls()
        if settings.SMTP_USERNAME:
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.send_message(msg)

    logger.info("Lien d'accès envoyé à %s", mask_email(to_email))


def deliver_magic_link(dispatch: MagicLinkDispatch) -> None:
    """
    Tâche de fond : envoie le lien après que la réponse a été renvoyée.
    Un échec d'envoi est journalisé mais jamais remonté au demandeur.
    """
    try:
        send_magic_link_email(dispatch.email, dispatch.token, dispatch.student_name)
    except Exception as exc:
        logger.error("Erreur envoi du lien d'accès à %s : %s", mask_email(dispatch.email), exc)
