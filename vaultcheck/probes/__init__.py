"""Default collaborators for the category probes."""
