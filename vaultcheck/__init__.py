"""vaultcheck — healthcheck aggregation for a password manager deployment."""

__version__ = "0.1.0"
