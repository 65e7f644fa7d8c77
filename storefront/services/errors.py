class StorefrontError(Exception):
    """Base class for failures surfaced to the shopper as a notification."""


class NotFound(StorefrontError):
    """A referenced product does not exist."""


class StoreUnavailable(StorefrontError):
    """A call to the cart/product store failed."""


class EndpointUnavailable(StorefrontError):
    """The assistant query endpoint was unreachable or answered with a failure."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class CaptureUnavailable(StorefrontError):
    """The microphone could not be acquired."""
