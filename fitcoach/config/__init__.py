from fitcoach.config.settings import settings

__all__ = ["settings"]
