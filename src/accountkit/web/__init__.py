"""Web layer for the exchange account API.

Controllers translate validated requests into exactly one collaborator call
and the outcome into exactly one response. They depend on the collaborator
interfaces in ``accountkit.services.base`` only; which implementation sits
behind them is decided by ``accountkit.services.factory``.
"""

__all__ = [
    "contracts",
    "controllers",
    "dependencies",
    "responses",
]
