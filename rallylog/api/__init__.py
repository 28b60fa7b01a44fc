"""RallyLog HTTP API."""
