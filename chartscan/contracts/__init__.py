from .config import ConfigProtocol

__all__ = ['ConfigProtocol']
