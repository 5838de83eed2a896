from .engine import make_engine, init_orm
from .models import Base, Url

__all__ = [
    "make_engine",
    "init_orm",
    "Base",
    "Url",
]
