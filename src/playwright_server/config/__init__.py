from .settings import Environment, Settings, get_settings, get_testing_settings, reload_settings

__all__ = ["Environment", "Settings", "get_settings", "get_testing_settings", "reload_settings"]
