from glb_linearizer.manifest.model import (
    Manifest,
    MaterialKind,
    MaterialRecord,
    TextureSlot,
)
from glb_linearizer.manifest.scene_graph import Renderable, SceneGraph

__all__ = [
    "Manifest",
    "MaterialKind",
    "MaterialRecord",
    "Renderable",
    "SceneGraph",
    "TextureSlot",
]
