"""Data models, link building and file streaming shared by the CLI and server."""
