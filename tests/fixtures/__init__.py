"""
Test doubles for deploy tracker collaborators.

Provides in-memory stand-ins for the notifier and the secret store so tests
can observe deliveries and swap tokens without touching the environment.
"""

from .fakes import InMemorySecretStore, RecordingNotifier

__all__ = ["InMemorySecretStore", "RecordingNotifier"]
