# Import models here so Alembic can discover metadata.
from app.models.user import User  # noqa: F401

from app.models.barangay import Barangay  # noqa: F401
from app.models.invitation import Invitation  # noqa: F401
from app.models.identity import Identity  # noqa: F401
