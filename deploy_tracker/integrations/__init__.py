"""Collaborators at the edge of the system: git, notifications, storage."""
