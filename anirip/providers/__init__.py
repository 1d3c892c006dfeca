"""Streaming providers and provider selection."""

from collections import namedtuple
from urllib.parse import urlparse

from ..exceptions import UnsupportedProviderError
from .crunchyroll import CrunchyrollSession, CrunchyrollShow
from .daisuki import DaisukiSession, DaisukiShow

Provider = namedtuple('Provider', ['name', 'session_cls', 'show_cls'])

PROVIDERS = (
    Provider('crunchyroll', CrunchyrollSession, CrunchyrollShow),
    Provider('daisuki', DaisukiSession, DaisukiShow),
)


def detect_provider(url):
    """Pick the provider whose name appears in the URL's host.

    Raises:
        UnsupportedProviderError: no provider matches
    """
    host = (urlparse(url).netloc or '').lower()
    for provider in PROVIDERS:
        if host and provider.name in host:
            return provider
    raise UnsupportedProviderError(f"The URL provided is not supported: {url}")


def detect_provider_by_name(name):
    """Pick a provider from a name token such as 'crunchyroll'"""
    token = (name or '').lower()
    for provider in PROVIDERS:
        if provider.name in token:
            return provider
    raise UnsupportedProviderError(f"The given provider is not supported: {name}")


__all__ = ['PROVIDERS', 'Provider', 'detect_provider', 'detect_provider_by_name']
