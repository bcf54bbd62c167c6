# listing_import/errors.py
"""Exception types raised by the import pipeline.

``FeedFetchError`` and ``OwnerResolutionError`` abort a whole run; the route
layer turns them into a ``{"success": false}`` response. ``InvalidListingError``
only ever affects one feed item and is counted, never propagated.
"""


class ImportPipelineError(Exception):
    """Base class for import failures."""


class FeedFetchError(ImportPipelineError):
    pass


class OwnerResolutionError(ImportPipelineError):
    pass


class InvalidListingError(ImportPipelineError):
    pass
