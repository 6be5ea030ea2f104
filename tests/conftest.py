import pytest

from glb_fixtures import GlbBuilder, png_bytes, solid_rgba
from glb_linearizer.utils.config_utils import TranscodeSettings


@pytest.fixture
def builder():
    return GlbBuilder()


@pytest.fixture
def lossless():
    return TranscodeSettings(quality=100, progress=False)


@pytest.fixture
def single_diffuse_glb():
    """One material with a 64x64 (128, 128, 128, 255) base-color PNG."""
    b = GlbBuilder()
    image = b.add_image(png_bytes(solid_rgba(64, 64)), name="albedo")
    tex = b.add_texture(image)
    mat = b.add_material(base=tex, name="painted")
    b.add_mesh_node(mat)
    return b.build()
