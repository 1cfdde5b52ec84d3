from curated_discoveries.config.settings import settings, Settings

__all__ = ["settings", "Settings"]
