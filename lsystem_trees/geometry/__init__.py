# lsystem_trees/geometry - Geometry Builder
"""Branch segments and leaves to welded, per-LOD mesh buffers."""

from .mesh import GeometryConfig, LODLevel, MeshData, MeshSection
from .builder import TreeGeometryBuilder

__all__ = ['GeometryConfig', 'LODLevel', 'MeshData', 'MeshSection', 'TreeGeometryBuilder']
