from .migrations import run_schema_setup
from .pool import close_pool, get_pool, init_pool

__all__ = ["close_pool", "get_pool", "init_pool", "run_schema_setup"]
