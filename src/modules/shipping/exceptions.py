"""Carrier integration exceptions."""


class CarrierError(Exception):
    """The carrier could not be reached or refused the request."""


class CarrierAuthError(CarrierError):
    """Carrier credentials are missing or were rejected."""


class CarrierConfigurationError(CarrierError):
    """A required carrier setting is missing."""
