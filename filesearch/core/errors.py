"""Error taxonomy for name resolution and remote API access."""

from typing import List, Optional, Sequence


class FileSearchError(Exception):
    """Base class for every error file-search reports to the user."""


class ResolutionError(FileSearchError):
    """A display name could not be turned into a single identifier."""

    def __init__(self, kind, value: str, message: str):
        super().__init__(message)
        self.kind = kind
        self.value = value


class NotFoundError(ResolutionError):
    """No record has the requested display name."""

    def __init__(self, kind, value: str, parent_id: Optional[str] = None):
        where = f" in {parent_id}" if parent_id else ""
        super().__init__(kind, value, f'No {kind.label} found with display name "{value}"{where}')
        self.parent_id = parent_id


class AmbiguousError(ResolutionError):
    """Several records share the requested display name."""

    def __init__(self, kind, value: str, identifiers: Sequence[str]):
        self.identifiers: List[str] = list(identifiers)
        message = (
            f'Multiple {kind.plural} match display name "{value}": '
            f"{', '.join(self.identifiers)}. Use the {kind.label} ID instead."
        )
        super().__init__(kind, value, message)


class ParentRequiredError(ResolutionError):
    """A document display name was given without its store."""

    def __init__(self, kind, value: str):
        super().__init__(
            kind,
            value,
            f'Cannot resolve {kind.label} "{value}" without a store. '
            "Pass --store/--store-id or use the full document ID.",
        )


class UnauthenticatedError(FileSearchError):
    """No usable credentials for a call that needs them."""


class ResolutionDisabledError(FileSearchError):
    """Display-name lookup is switched off in the configuration."""



class DirectoryError(FileSearchError):
    """A directory listing failed for a transient reason."""


class UnavailableError(DirectoryError):
    """The remote API could not be reached or failed server-side."""


class RefreshTimeoutError(UnavailableError):
    """A caller gave up waiting on a cache refresh."""


class RateLimitedError(DirectoryError):
    """The remote API rejected the call with a quota error."""


class RemoteAPIError(FileSearchError):
    """Any other error returned by the remote API."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code
