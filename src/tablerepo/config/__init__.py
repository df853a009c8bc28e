"""Configuration package.

Import from ``tablerepo.config.settings`` directly where needed so that
environment variables are only read when settings are actually used.
"""

__all__: list[str] = []
