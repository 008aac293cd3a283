from . import mutator

__all__ = ["mutator"]
