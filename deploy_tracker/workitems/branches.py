"""Local branch naming for work items."""

from collections.abc import Iterable

FIX_PREFIXES = ("DE", "DF")


def branch_prefix(ticket_id: str, namespace: str = "starship") -> str:
    """``fix/{namespace}/{ID}`` for defects, ``feature/{namespace}/{ID}`` otherwise."""
    ticket = ticket_id.upper()
    kind = "fix" if ticket.startswith(FIX_PREFIXES) else "feature"
    return f"{kind}/{namespace}/{ticket}"


def next_branch_name(
    ticket_id: str, existing: Iterable[str], namespace: str = "starship"
) -> str:
    """Next free ``{prefix}-{n}`` name, one above the highest numeric suffix."""
    prefix = branch_prefix(ticket_id, namespace)
    highest = 0
    for branch in existing:
        if not branch.startswith(prefix + "-"):
            continue
        suffix = branch.rsplit("-", 1)[-1]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{prefix}-{highest + 1}"
