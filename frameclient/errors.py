"""Domain-specific errors for frameclient."""


class FrameClientError(Exception):
    """Base error for frameclient."""


class DiscoveryError(FrameClientError):
    """Raised when the REST device-info request fails."""


class TransferError(FrameClientError):
    """Raised when an image upload or thumbnail download fails."""
