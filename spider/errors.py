class SpiderError(Exception):
    """Base class for spider errors."""


class ConfigError(SpiderError):
    """Raised when the configuration file is missing or malformed."""
