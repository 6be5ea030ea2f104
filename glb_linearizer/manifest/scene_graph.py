"""
Read-only materialized scene graph built from the manifest.

Scenes -> root nodes -> children -> mesh -> primitives -> material. The graph
is what a renderer would draw, so only materials reachable from a node count
as "in use".
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional, Set

from glb_linearizer.manifest.model import Manifest, MaterialRecord, NodeRecord


@dataclass(frozen=True)
class Renderable:
    node: NodeRecord
    material: MaterialRecord


class SceneGraph:
    def __init__(self, manifest: Manifest, roots: List[int]):
        self.manifest = manifest
        self.roots = roots

    @classmethod
    def from_manifest(cls, manifest: Manifest) -> "SceneGraph":
        """Collect root nodes from every scene, or all parentless nodes when there are none."""
        if manifest.scenes:
            roots = []
            for scene in manifest.scenes:
                for n in scene.nodes:
                    if n not in roots:
                        roots.append(n)
        else:
            children: Set[int] = set()
            for node in manifest.nodes:
                children.update(node.children)
            roots = [node.index for node in manifest.nodes if node.index not in children]
        return cls(manifest, roots)

    def _node(self, index: int) -> Optional[NodeRecord]:
        if isinstance(index, int) and 0 <= index < len(self.manifest.nodes):
            return self.manifest.nodes[index]
        return None

    def traverse(self) -> Iterator[NodeRecord]:
        """Depth-first walk; each node is visited once even if the graph has cycles."""
        seen: Set[int] = set()
        stack = list(reversed(self.roots))
        while stack:
            node = self._node(stack.pop())
            if node is None or node.index in seen:
                continue
            seen.add(node.index)
            yield node
            stack.extend(reversed(node.children))

    def renderables(self) -> Iterator[Renderable]:
        """Yield (node, material) for every mesh primitive that has a material."""
        meshes = self.manifest.meshes
        materials = self.manifest.materials
        for node in self.traverse():
            if not isinstance(node.mesh, int) or not 0 <= node.mesh < len(meshes):
                continue
            for prim in meshes[node.mesh].primitives:
                if isinstance(prim.material, int) and 0 <= prim.material < len(materials):
                    yield Renderable(node, materials[prim.material])
