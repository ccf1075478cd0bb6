"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(request_timeout=5.0)
    """

    # Seconds until a request's Context deadline passes; None for no deadline.
    # The deadline is advisory: handlers read it, nothing enforces it.
    request_timeout: float | None = None

    # Limits
    max_content_length: int = 16 * 1024 * 1024  # 16 MB
