"""
Gamma-correct the diffuse textures of a GLB and repack it with PNG images.

Provides convert_glb() for library use and the glb-linearize / glb-inspect
command-line tools.
"""

from glb_linearizer.pipeline import ConversionResult, convert_glb
from glb_linearizer.utils.config_utils import TranscodeSettings, load_settings

__version__ = "0.1.0"
__all__ = ["ConversionResult", "TranscodeSettings", "convert_glb", "load_settings"]
