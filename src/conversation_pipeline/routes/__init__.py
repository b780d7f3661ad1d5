from .conversations import router as conversations_router
from .costs import router as costs_router

__all__ = ["conversations_router", "costs_router"]
