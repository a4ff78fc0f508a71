"""API routers."""
from mindbattle.routers import admin, auth, contests, health, wallet

__all__ = [
    "admin",
    "auth",
    "contests",
    "health",
    "wallet",
]
