"""
Modelos SQLModel para la API Stage Locker
"""
from .account import Account

__all__ = ["Account"]
