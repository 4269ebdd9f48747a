from pioneer.models.base import Base
from pioneer.models.preference import Preference

__all__ = [
    "Base",
    "Preference",
]
