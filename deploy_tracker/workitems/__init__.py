"""Work item creation helpers: ticket parsing, branch naming, links."""

from .branches import branch_prefix, next_branch_name
from .service import WorkItemError, WorkItemService
from .tickets import (
    TicketLink,
    build_ticket_url,
    parse_ticket_link,
    parse_ticket_links,
    parse_tickets,
)

__all__ = [
    "TicketLink",
    "WorkItemError",
    "WorkItemService",
    "branch_prefix",
    "build_ticket_url",
    "next_branch_name",
    "parse_ticket_link",
    "parse_ticket_links",
    "parse_tickets",
]
