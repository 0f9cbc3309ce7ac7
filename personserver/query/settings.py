"""
Resolution settings shared by the routers.
"""

from functools import lru_cache

from personres.config import ResolutionConfig, load_resolution_config


@lru_cache(maxsize=1)
def get_resolution_config() -> ResolutionConfig:
    """
    FastAPI dependency returning the process-wide resolution config.
    """
    return load_resolution_config()
