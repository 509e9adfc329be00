from academy.health.router import router


__all__ = ["router"]
