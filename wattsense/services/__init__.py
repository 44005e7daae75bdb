"""Budget, usage, and notification services."""
