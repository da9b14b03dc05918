# Importe tous les modèles pour enregistrer leurs tables dans Base.metadata
# avant que SQLAlchemy résolve les relations inter-modèles (Student ↔ Certificate, Package).

from cda_portal.models.student import Student  # noqa: F401  (doit précéder certificate et package)
from cda_portal.models.certificate import Certificate  # noqa: F401
from cda_portal.models.package import Package  # noqa: F401
from cda_portal.models.magic_token import MagicToken  # noqa: F401
