from .manager import ProcessManager

__all__ = ["ProcessManager"]
