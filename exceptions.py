class RelayError(Exception):
    """Base class for relay failures."""


class PathTranslationError(RelayError):
    """No configured socket prefix matches the inbound path."""

    def __init__(self, path: str):
        super().__init__(f"Cannot translate path '{path}'")
        self.path = path


class TransportSendError(RelayError):
    """Delivering a message to one connection failed."""

    def __init__(self, connection_id: str, cause: Exception):
        super().__init__(f"Send to connection {connection_id} failed: {cause}")
        self.connection_id = connection_id
        self.cause = cause


class KeepaliveProbeError(TransportSendError):
    """A keepalive probe could not be delivered."""


class OutboundForwardError(RelayError):
    """The outbound webhook call failed at the transport level."""

    def __init__(self, url: str, cause: Exception):
        super().__init__(f"Error forwarding message to {url}: {cause}")
        self.url = url
        self.cause = cause
