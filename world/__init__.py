from .road import ReferenceRoad

__all__ = ['ReferenceRoad']
