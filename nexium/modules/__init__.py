"""Feature modules: engines, repositories and the orchestrating game service."""
