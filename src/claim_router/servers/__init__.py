from .apps import ClaimServer
from .tokens import TokensService
from .resolver import ClaimableResolver
from .cache import TTLCache

__all__ = [
    "ClaimServer",
    "TokensService",
    "ClaimableResolver",
    "TTLCache",
]
