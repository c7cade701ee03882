"""Exception types shared across the pipeline."""


class LeadgenError(Exception):
    """Base class for pipeline errors."""


class ConfigError(LeadgenError):
    """Missing or invalid configuration (credentials, API keys)."""


class ProviderError(LeadgenError):
    """A third-party provider returned an unsuccessful response."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider}: {message}")


class SendBlocked(LeadgenError):
    """The lifecycle guard refused an outbound email for a contact."""

    def __init__(self, contact_id: int, reason: str):
        self.contact_id = contact_id
        self.reason = reason
        super().__init__(f"contact {contact_id}: {reason}")
