from glb_linearizer.container.glb_reader import GlbContainer, parse_glb
from glb_linearizer.container.glb_writer import assemble_glb
from glb_linearizer.container.layout import (
    BufferViewLayoutPlan,
    LayoutPlan,
    materialize_layout,
    plan_layout,
)

__all__ = [
    "BufferViewLayoutPlan",
    "GlbContainer",
    "LayoutPlan",
    "assemble_glb",
    "materialize_layout",
    "parse_glb",
    "plan_layout",
]
