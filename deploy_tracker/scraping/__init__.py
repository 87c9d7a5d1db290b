"""Text processing for CI logs and deployment config files."""

from .exceptions import MissingMarkerError, NoMatchError, ScrapingError
from .log_scraper import extract_module_versions, extract_tag
from .patching import find_declared_version, replace_declared_version

__all__ = [
    "MissingMarkerError",
    "NoMatchError",
    "ScrapingError",
    "extract_module_versions",
    "extract_tag",
    "find_declared_version",
    "replace_declared_version",
]
