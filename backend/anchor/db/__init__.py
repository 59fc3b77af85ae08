"""Database utilities and models."""

from anchor.db.base import Base
from anchor.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
