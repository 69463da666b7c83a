class ConfigurationError(ValueError):
    """Bad simulation parameters, detected before the first access runs."""


class InvariantViolation(RuntimeError):
    """Frame table, page directory and policy bookkeeping no longer agree."""
