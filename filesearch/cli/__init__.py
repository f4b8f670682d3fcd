"""file-search command-line interface."""
