"""Single source of truth for the application version.

Keep this file minimal. Other modules (config, __init__, etc.) should import
APP_VERSION / __version__ from here to avoid mismatch regressions.
"""

from __future__ import annotations

APP_NAME = "RecallTrainer"
APP_VERSION = "1.4.0"
__version__ = APP_VERSION
