from .config import CounterConfig, ServiceConfig, StoreConfig
from .engine import TableEngine

__all__ = ["CounterConfig", "ServiceConfig", "StoreConfig", "TableEngine"]
