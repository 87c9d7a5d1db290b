"""Extract build artifact versions from raw CI log text.

Functions here are pure: they take log text and return values or raise a
``ScrapingError``. They never perform I/O.
"""

import re
from collections.abc import Collection, MutableMapping

from .exceptions import MissingMarkerError, NoMatchError

TAG_MARKER = "Push Artifact (Gated)"
TAG_PREFIX = "New Tag is "

# CONTAINER_IMAGE_INFO: <host>/<a>/<b>/<c>/<d>/<module>:<version>
CONTAINER_IMAGE_PATTERN = re.compile(
    r"CONTAINER_IMAGE_INFO:\s+[^/\s]+/[^/\s]+/[^/\s]+/[^/\s]+/[^/\s]+/([^:\s]+):(\S+)"
)


def extract_tag(log_text: str) -> str:
    """Return the tag published by a gated artifact push.

    Lines are scanned from the bottom up and the first line holding
    ``New Tag is `` followed by a non-empty value wins.

    Raises:
        MissingMarkerError: If the log never reached the artifact push step
        NoMatchError: If no tag line with a value exists
    """
    if TAG_MARKER not in log_text:
        raise MissingMarkerError(f"Log does not contain '{TAG_MARKER}'")

    for line in reversed(log_text.splitlines()):
        index = line.find(TAG_PREFIX)
        if index == -1:
            continue
        tag = line[index + len(TAG_PREFIX) :].strip()
        if tag:
            return tag

    raise NoMatchError(f"No '{TAG_PREFIX.strip()}' line found in log")


def extract_module_versions(
    log_text: str,
    allowed_modules: Collection[str],
    into: MutableMapping[str, str] | None = None,
) -> MutableMapping[str, str]:
    """Collect ``module -> version`` pairs from container image lines.

    Only modules in ``allowed_modules`` are recorded and the first occurrence
    of a module wins. Pass ``into`` to accumulate across several logs; entries
    already present are never overwritten.
    """
    versions: MutableMapping[str, str] = {} if into is None else into
    allowed = set(allowed_modules)

    for match in CONTAINER_IMAGE_PATTERN.finditer(log_text):
        module, version = match.group(1), match.group(2)
        if module in allowed and module not in versions:
            versions[module] = version

    return versions
