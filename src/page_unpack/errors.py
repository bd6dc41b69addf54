from __future__ import annotations


class PageUnpackError(Exception):
    """Base exception for page-unpack."""


class UnsafePathError(PageUnpackError):
    """Raised when a recovered path is unsafe to write to disk."""


class FetchError(PageUnpackError):
    """Raised when a page, script, sourcemap or chunk can't be fetched."""

    def __init__(self, message: str, url: str = ""):
        self.url = url
        super().__init__(message)


class ParseError(PageUnpackError):
    """Raised for a malformed sourcemap, or bootstrap code that isn't JavaScript."""

    def __init__(self, message: str, location: str = ""):
        self.location = location
        super().__init__(message)


class ConsistencyError(PageUnpackError):
    """Raised when `sources` and `sourcesContent` differ in length."""


class FormatError(PageUnpackError):
    """Raised by a formatter backend when a single attempt fails."""


class FormatExhaustedError(PageUnpackError):
    """Raised when every formatting attempt for a source failed."""

    def __init__(self, text: str, path: str | None, errors: tuple[FormatError, ...]):
        self.text = text
        self.path = path
        self.errors = errors
        last = f": {errors[-1]}" if errors else ""
        super().__init__(f"Could not format {path or '<inline script>'} after {len(errors)} attempts{last}")


class PathCollisionError(PageUnpackError):
    """Raised when two sources with different content end up on the same path."""


class OutputError(PageUnpackError):
    """Raised when a recovered file can't be written to the output directory."""

    def __init__(self, message: str, path: str = ""):
        self.path = path
        super().__init__(message)
