from .version import APP_NAME, APP_VERSION, __version__

__all__ = ["APP_NAME", "APP_VERSION", "__version__"]
