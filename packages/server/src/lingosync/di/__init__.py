from .container import AppContainer

__all__ = ["AppContainer"]
