"""Real-time and outbox event definitions."""
