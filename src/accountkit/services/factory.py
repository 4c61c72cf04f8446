"""Factory for the collaborator bundle used by the web layer."""

from accountkit.config import get_settings
from accountkit.services.base import Services
from accountkit.services.identity import LocalIdentityService
from accountkit.services.notifications import MailNotifier
from accountkit.services.security import LocalSecurityService
from accountkit.services.sso import HelpdeskSigner
from accountkit.services.wallet import LocalWalletService

# Singleton instance
_services_instance: Services | None = None


def get_services() -> Services:
    """Get the configured collaborator bundle.

    The local implementations share one notifier and the application
    database session factory.

    Returns:
        Services bundle (identity, security, wallet, notifier, sso)
    """
    global _services_instance

    if _services_instance is not None:
        return _services_instance

    settings = get_settings()
    notifier = MailNotifier(settings)
    security = LocalSecurityService(notifier, settings)

    _services_instance = Services(
        identity=LocalIdentityService(security, notifier, settings),
        security=security,
        wallet=LocalWalletService(settings),
        notifier=notifier,
        sso=HelpdeskSigner(settings),
    )
    return _services_instance


def reset_services() -> None:
    """Reset services instance (useful for testing)."""
    global _services_instance
    _services_instance = None
