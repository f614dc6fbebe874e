# SQLAlchemy models
from .base import Base
from .study import Association, Pair

__all__ = [
    "Base",
    "Pair",
    "Association",
]
