"""
Horizon custom exceptions.
"""


class HorizonError(Exception):
    """Base exception for Horizon."""

    pass


class HorizonConfigError(HorizonError):
    """Configuration or invocation error (bad session date, bad settings)."""

    pass


class HorizonDataError(HorizonError):
    """Malformed or missing market data."""

    pass


class HorizonReportError(HorizonError):
    """Report collaborator failed to produce text."""

    pass
