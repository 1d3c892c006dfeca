"""Error kinds raised by providers, adapters and the episode pipeline."""


class AniripError(Exception):
    """Base error carrying a readable message and an optional cause."""

    def __init__(self, message, cause=None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self):
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class UnsupportedProviderError(AniripError):
    """No provider variant matches the given URL or name."""


class AuthenticationError(AniripError):
    """Login to the provider failed."""


class MetadataFetchError(AniripError):
    """Show or episode metadata could not be fetched."""


class VideoFetchError(AniripError):
    """The episode video could not be downloaded."""


class TrimError(AniripError):
    """Cutting an intro off the video failed."""


class SubtitleFetchError(AniripError):
    """The subtitle listing or payload could not be fetched."""


class SubtitleDecryptError(AniripError):
    """A subtitle payload could not be turned into ASS text.

    ``stage`` is one of ``decode``, ``decrypt``, ``inflate`` or ``parse``.
    """

    def __init__(self, message, stage, cause=None):
        super().__init__(message, cause)
        self.stage = stage


class MergeError(AniripError):
    """Muxing the subtitle track into the container failed."""


class CleanError(AniripError):
    """Cleaning container metadata failed."""


class PlacementError(AniripError):
    """The finished episode could not be moved to its final path."""
