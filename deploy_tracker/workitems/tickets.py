"""Ticket id parsing and ticket link helpers."""

import re
from dataclasses import dataclass
from urllib.parse import urlparse

TICKET_PATTERN = re.compile(r"\b(?:US|DE)\d+\b", re.IGNORECASE)
TICKET_PLACEHOLDER = re.compile(r"\{ticketnumber\}", re.IGNORECASE)
MARKDOWN_LINK = re.compile(r"^\s*\[([^\]]+)\]\(([^)]+)\)\s*$")


@dataclass(frozen=True)
class TicketLink:
    """A ticket id with the URL it links to."""

    ticket_id: str
    url: str
    markdown: str


def parse_tickets(text: str) -> list[str]:
    """Extract unique ``US``/``DE`` ticket ids, upper-cased, in first-seen order."""
    seen: set[str] = set()
    tickets: list[str] = []
    for match in TICKET_PATTERN.finditer(text):
        ticket = match.group(0).upper()
        if ticket not in seen:
            seen.add(ticket)
            tickets.append(ticket)
    return tickets


def build_ticket_url(template: str, ticket_id: str) -> str | None:
    """Fill a ticket URL template; None when the template is blank."""
    template = template.strip()
    if not template:
        return None
    return TICKET_PLACEHOLDER.sub(lambda _: ticket_id, template)


def parse_ticket_link(markdown: str) -> TicketLink | None:
    """Parse a single ``[ID](url)`` line. The URL must carry a scheme."""
    match = MARKDOWN_LINK.match(markdown)
    if match is None:
        return None

    ticket_id = match.group(1).strip()
    url = match.group(2).strip()
    if not ticket_id or not urlparse(url).scheme:
        return None
    return TicketLink(ticket_id=ticket_id, url=url, markdown=markdown.strip())


def parse_ticket_links(text: str) -> tuple[list[TicketLink], list[str]]:
    """Parse one link per non-blank line.

    Returns:
        Parsed links and the lines that were not valid links
    """
    links: list[TicketLink] = []
    invalid: list[str] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        link = parse_ticket_link(line)
        if link is None:
            invalid.append(line)
        else:
            links.append(link)
    return links, invalid
