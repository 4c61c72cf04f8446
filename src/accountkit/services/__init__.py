"""Collaborator interfaces and their local implementations.

The web layer depends only on the interfaces in ``base``; the local
implementations back them with the account database, SMTP, reCAPTCHA and
the helpdesk SSO secrets from configuration.
"""

from accountkit.services.base import (
    IdentityService,
    MailType,
    Notifier,
    SecurityService,
    Services,
    SessionClaim,
    SSOSigner,
    WalletService,
)
from accountkit.services.factory import get_services, reset_services

__all__ = [
    "IdentityService",
    "MailType",
    "Notifier",
    "SecurityService",
    "Services",
    "SessionClaim",
    "SSOSigner",
    "WalletService",
    "get_services",
    "reset_services",
]
