"""Exception types shared by the catalog store and the sync pipeline."""


class CatalogError(Exception):
    """Base class for every error raised by opportunity_hub."""


class QueryError(CatalogError):
    """A filter could not be interpreted."""


class UnsupportedOperatorError(QueryError):
    def __init__(self, operator: str):
        super().__init__(f"unsupported query operator: {operator}")
        self.operator = operator


class StorageError(CatalogError):
    """The backing collection could not be read or written."""


class InvalidOpportunityError(CatalogError):
    """An incoming record cannot be matched or stored."""


class FetchError(CatalogError):
    """An upstream source could not be fetched."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source
