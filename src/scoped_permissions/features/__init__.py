"""Feature modules for scoped-permissions."""
