"""Exception types shared across the booksearch package."""


class BookSearchError(Exception):
    """Base class for errors raised by booksearch."""


class IndexFormatError(BookSearchError, ValueError):
    """Raised when a serialized search index does not have the expected shape."""


class UnknownPipelineFunctionError(BookSearchError, ValueError):
    """Raised when a pipeline descriptor names a function that is not registered."""


class DuplicateDocumentError(BookSearchError, ValueError):
    """Raised when a document ref is added to an index twice."""


class ReadOnlyIndexError(BookSearchError, RuntimeError):
    """Raised when a loaded (immutable) index is asked to accept new documents."""


class BookLoadError(BookSearchError, RuntimeError):
    """Raised when a book directory cannot be converted into searchable sections."""
