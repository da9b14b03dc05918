"""
Réponses HTTP partagées par les routes de téléchargement.
"""

import re
import unicodedata
from urllib.parse import quote

from fastapi.responses import Response

DEFAULT_PDF_FILENAME = "document.pdf"

# Caractères interdits dans la valeur entre guillemets de filename="..."
_UNSAFE_FALLBACK = re.compile(r'["\\\x00-\x1f\x7f]')


def content_disposition(filename: str) -> str:
    """
    En-tête Content-Disposition (RFC 6266) pour un nom de fichier quelconque.

    filename="..." porte une version ASCII du nom (accents retirés, guillemets remplacés),
    filename*=UTF-8''... porte le nom exact encodé en pourcentage.
    """
    filename = filename or DEFAULT_PDF_FILENAME
    ascii_name = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    ascii_name = _UNSAFE_FALLBACK.sub("_", ascii_name).strip() or DEFAULT_PDF_FILENAME
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename, safe='')}"


def pdf_response(pdf_bytes: bytes, filename: str) -> Response:
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": content_disposition(filename)},
    )
