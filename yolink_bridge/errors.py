"""Error taxonomy shared by the vendor client, telemetry and HTTP layers."""


class BridgeError(Exception):
    """Base class for every error surfaced by the bridge."""


class ConfigError(BridgeError):
    """Required configuration (client credentials) is missing."""


class AuthError(BridgeError):
    """Token exchange failed or the vendor rejected the credential."""


class NetworkError(BridgeError):
    """Transport failure talking to the vendor API or broker."""


class ParseError(BridgeError):
    """Malformed JSON or an unexpected shape from the vendor or broker."""


class VendorError(BridgeError):
    """Well-formed envelope that reports a non-success code."""

    def __init__(self, desc: str, code: str):
        super().__init__(f"API error: {desc} (code: {code})")
        self.desc = desc
        self.code = code


class NotFoundError(BridgeError):
    """Device id absent from the vendor's device list."""


class ValidationError(BridgeError):
    """Required request parameters are missing."""
