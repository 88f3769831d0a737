"""
Notekeeper.

- backend/: Note store API, text improvement gateway, configuration, logging
- client/: Store client, assist service and editor state controller
- rendering/: Markdown normalization, rendering and HTML sanitization
"""
