"""Background work: work item monitoring and release pipelines."""
