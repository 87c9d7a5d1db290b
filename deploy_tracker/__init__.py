"""Work item tracking and release automation for ticket-to-deployment flows.

Tracks developer work items (ticket, branch, pull request, build, deployment)
against the GitHub REST API and drives the release-config update pipelines
once a change merges.
"""

__version__ = "1.0.0"
