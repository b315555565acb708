"""
Rendered instance caching.
"""

from modules.provisioning.cache.keyed_lock import KeyedLock
from modules.provisioning.cache.render_cache import RenderCache

__all__ = ["KeyedLock", "RenderCache"]
