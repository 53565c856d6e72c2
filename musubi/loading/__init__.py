"""Dictionary snapshot loaders."""
