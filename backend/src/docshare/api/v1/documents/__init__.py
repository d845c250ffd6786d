from .router import router, shared_router

__all__ = ["router", "shared_router"]
