"""Line-based editing of version declarations in YAML-like config files.

The files are edited as text rather than parsed and re-serialized so that
comments, ordering and formatting survive untouched.

A key is either flat (``dockerImageTag``), matching a declaration at any
depth, or a dotted path (``parameters.DEPLOY_TAG.default``) resolved from
the document root by indentation.
"""

import re
from dataclasses import dataclass

_DECLARATION = re.compile(
    r"^(?P<indent>[ ]*)(?P<dash>-[ ]+)?"
    r"(?P<key>[A-Za-z0-9_\-/]+|\"[^\"]*\"|'[^']*'):"
    r"(?P<sep>[ \t]*)(?P<rest>.*)$"
)


@dataclass
class _Declaration:
    line_index: int
    value_start: int
    value_end: int
    value: str


def _scalar_span(rest: str) -> str:
    """The value part of ``rest``, without trailing comment or whitespace."""
    if rest[:1] in ('"', "'"):
        closing = rest.find(rest[0], 1)
        if closing != -1:
            return rest[: closing + 1]
    comment = rest.find(" #")
    if comment != -1:
        rest = rest[:comment]
    return rest.rstrip()


def _find(lines: list[str], key: str) -> _Declaration | None:
    target = key.split(".")
    stack: list[tuple[int, str]] = []

    for index, line in enumerate(lines):
        body = line.rstrip("\r\n")
        stripped = body.strip()
        if not stripped or stripped.startswith("#"):
            continue

        match = _DECLARATION.match(body)
        if match is None:
            continue
        if match.group("rest") and not match.group("sep"):
            # "a:b" is a scalar, not a mapping entry
            continue

        indent = len(match.group("indent")) + len(match.group("dash") or "")
        name = match.group("key").strip("\"'")
        while stack and stack[-1][0] >= indent:
            stack.pop()

        path = [entry[1] for entry in stack] + [name]
        value = _scalar_span(match.group("rest"))
        matches_path = path == target if len(target) > 1 else name == target[0]
        if matches_path and value:
            start = match.start("rest")
            return _Declaration(index, start, start + len(value), value)

        stack.append((indent, name))

    return None


def find_declared_version(text: str, key: str) -> str | None:
    """Return the current value declared for ``key``, unquoted, or None."""
    declaration = _find(text.splitlines(keepends=True), key)
    if declaration is None:
        return None
    value = declaration.value
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        value = value[1:-1]
    return value


def replace_declared_version(
    text: str, key: str, new_value: str, *, quote: bool = False
) -> str:
    """Replace the value of the first declaration of ``key``.

    The key token, indentation, trailing comment and line ending of that line
    are preserved and every other line is left byte-identical. When the key
    is not declared the text is returned unchanged.
    """
    lines = text.splitlines(keepends=True)
    declaration = _find(lines, key)
    if declaration is None:
        return text

    rendered = '"' + new_value.replace('"', '\\"') + '"' if quote else new_value
    line = lines[declaration.line_index]
    lines[declaration.line_index] = (
        line[: declaration.value_start] + rendered + line[declaration.value_end :]
    )
    return "".join(lines)
