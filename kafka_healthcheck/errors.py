"""Custom exceptions for the Kafka health check."""


class ConfigError(Exception):
    """Raised when config is invalid or missing."""


class RegistrationError(Exception):
    """Raised when the health check cannot register itself in ZooKeeper."""


class BrokerConnectionError(Exception):
    """Raised when the broker cannot be reached for metadata, produce or consume."""


class CoordinationError(Exception):
    """Raised when ZooKeeper cannot be reached or read during a check."""
