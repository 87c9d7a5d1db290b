"""Log scraping exceptions."""


class ScrapingError(Exception):
    """Base exception for log scraping failures."""

    pass


class MissingMarkerError(ScrapingError):
    """The log does not contain the artifact push marker."""

    pass


class NoMatchError(ScrapingError):
    """The log contains the marker but no usable tag line."""

    pass
