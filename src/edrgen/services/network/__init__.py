from .channel import NetworkChannel, SelfTestAcceptor

__all__ = ["NetworkChannel", "SelfTestAcceptor"]
