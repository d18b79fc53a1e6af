"""Student check-in/check-out time tracking."""
