from .db import clear_store, close_store, init_store

__all__ = ["init_store", "close_store", "clear_store"]
