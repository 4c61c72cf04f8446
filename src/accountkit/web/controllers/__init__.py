"""HTTP controllers for the account API.

Each handler makes one collaborator call (signup and login check the
captcha first) and turns the outcome into exactly one response.
"""

from accountkit.web.controllers.auth import router as auth_router
from accountkit.web.controllers.tokens import router as tokens_router
from accountkit.web.controllers.user import router as user_router
from accountkit.web.controllers.wallet import router as wallet_router

__all__ = [
    "auth_router",
    "tokens_router",
    "user_router",
    "wallet_router",
]
