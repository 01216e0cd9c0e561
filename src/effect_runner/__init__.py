from .runtime import TaskRunner, register, AsyncClient, Channels

__all__ = ["TaskRunner", "register", "AsyncClient", "Channels"]
