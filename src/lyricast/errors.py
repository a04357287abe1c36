"""Exception types shared by the resolver, store, and player layers."""


class LyricastError(Exception):
    """Base class for Lyricast errors."""


class StoreTransportError(LyricastError):
    """The candidate store could not be reached."""


class ProviderTransportError(LyricastError):
    """The search provider was unreachable or rejected the request."""


class ProviderConfigError(LyricastError):
    """The search provider is not configured (e.g. missing API key)."""
