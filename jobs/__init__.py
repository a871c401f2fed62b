"""Background jobs: broker, scheduler and tasks."""
