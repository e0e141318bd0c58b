"""
Catalog error taxonomy.

Source-level errors cause one source to be skipped, record-level errors cause
one record to be dropped. Only CatalogUnavailable fails a whole run.
"""


class CatalogError(Exception):
    """Base class for catalog pipeline errors"""
    pass


class SourceUnavailable(CatalogError):
    """Raised when a source document cannot be fetched"""
    pass


class SourceMalformed(CatalogError):
    """Raised when a document lacks its expected root collection"""
    pass


class RecordMalformed(CatalogError):
    """Raised when a single channel or program entry cannot be parsed"""
    pass


class CatalogUnavailable(CatalogError):
    """Raised when neither the base catalog nor any source yielded data"""
    pass
