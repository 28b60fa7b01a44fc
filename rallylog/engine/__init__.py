"""RallyLog engines — scoring state machine, replay and statistics."""
