"""
Relay core REST API package

Use ``create_app`` to build a new application or the global ``api``
wrapper to lazily create one with the default settings.
"""

from .api import api, create_app
