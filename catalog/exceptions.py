"""
Error taxonomy for catalog refreshes.

- NotFound: the referenced parent entity does not exist.
- SourceUnavailable: transport or HTTP failure talking to the search provider.
- PageFetchFailed: navigation/timeout failure loading a rendered product page.
- PersistenceConflict: unique-constraint violation during an upsert.
- InvalidJobTransition: a ScrapeJob was moved out of order or out of a
  terminal state.
"""


class CatalogError(Exception):
    """Base class for catalog refresh errors."""


class NotFound(CatalogError):
    """A referenced catalog entity is missing."""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class SourceUnavailable(CatalogError):
    """The structured search provider could not be reached or answered non-2xx."""

    def __init__(self, message: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(message)


class PageFetchFailed(CatalogError):
    """
    A rendered product page failed to load.

    `partial` carries whatever fields were extracted before the failure
    (a PageExtraction or None); the caller decides whether to use it.
    """

    def __init__(self, url: str, reason: str, partial=None):
        self.url = url
        self.reason = reason
        self.partial = partial
        super().__init__(f"Failed to fetch page {url}: {reason}")


class PersistenceConflict(CatalogError):
    """A unique constraint rejected an insert."""

    def __init__(self, model: str, lookup: dict):
        self.model = model
        self.lookup = lookup
        super().__init__(f"Unique constraint conflict on {model} for {lookup}")


class InvalidJobTransition(CatalogError):
    """Illegal ScrapeJob state transition."""

    def __init__(self, job_id, current: str, target: str):
        self.job_id = job_id
        self.current = current
        self.target = target
        super().__init__(f"Job {job_id} cannot move from {current} to {target}")
