"""Template loading: built-in YAML registry, user template files and custom subjects."""
