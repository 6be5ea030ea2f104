import math
from dataclasses import dataclass, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import yaml  # type: ignore
except ImportError as exc:
    raise ImportError(
        "PyYAML is required to read the transcode configuration. "
        "Install with `pip install pyyaml`."
    ) from exc

from glb_linearizer.errors import ConfigError
from glb_linearizer.textures.gamma import GammaDirection

CONFIG_PATH = Path(__file__).resolve().parents[2] / "config/transcode.yml"

LOSSLESS_QUALITY = 100
DEFAULT_MAX_DIMENSION = 1024


class OptimizationLevel(str, Enum):
    NONE = "none"
    BALANCED = "balanced"
    AGGRESSIVE = "aggressive"


# level -> (palette size, max dimension); palette 0 means no quantization
LEVEL_PRESETS = {
    OptimizationLevel.NONE: (0, None),
    OptimizationLevel.BALANCED: (256, DEFAULT_MAX_DIMENSION),
    OptimizationLevel.AGGRESSIVE: (64, DEFAULT_MAX_DIMENSION),
}


def quality_to_palette_size(quality: int) -> int:
    """Map 0-100 quality to an encoder palette size; 100 is lossless (0)."""
    if quality == LOSSLESS_QUALITY:
        return 0
    return int(math.floor(2 + (254 * quality) / 100 + 0.5))


@dataclass(frozen=True)
class TranscodeSettings:
    gamma: GammaDirection = GammaDirection.DELINEARIZE
    level: OptimizationLevel = OptimizationLevel.NONE
    # when set, overrides the level's palette and disables its resize
    quality: Optional[int] = None
    max_dimension: Optional[int] = None
    max_workers: Optional[int] = None
    progress: bool = True

    def __post_init__(self):
        try:
            object.__setattr__(self, "gamma", GammaDirection(self.gamma))
        except ValueError as exc:
            raise ConfigError(f"Unsupported gamma direction: {self.gamma}") from exc
        try:
            object.__setattr__(self, "level", OptimizationLevel(self.level))
        except ValueError as exc:
            raise ConfigError(f"Unsupported optimization level: {self.level}") from exc
        if self.quality is not None:
            if isinstance(self.quality, bool) or not isinstance(self.quality, int):
                raise ConfigError("quality must be an integer between 0 and 100")
            if not 0 <= self.quality <= 100:
                raise ConfigError(f"quality must be between 0 and 100, got {self.quality}")
        if self.max_dimension is not None and (
            not isinstance(self.max_dimension, int) or self.max_dimension < 1
        ):
            raise ConfigError(f"max_dimension must be a positive integer, got {self.max_dimension}")
        if self.max_workers is not None and (
            not isinstance(self.max_workers, int) or self.max_workers < 1
        ):
            raise ConfigError(f"max_workers must be a positive integer, got {self.max_workers}")

    @property
    def palette_size(self) -> int:
        if self.quality is not None:
            return quality_to_palette_size(self.quality)
        return LEVEL_PRESETS[self.level][0]

    @property
    def target_max_dimension(self) -> Optional[int]:
        if self.max_dimension is not None:
            return self.max_dimension
        if self.quality is not None:
            return None
        return LEVEL_PRESETS[self.level][1]

    def describe(self) -> str:
        if self.quality is not None:
            size = "lossless" if self.quality == LOSSLESS_QUALITY else f"quality {self.quality}"
        else:
            size = f"level {self.level.value}"
        return (
            f"gamma={self.gamma.value}, {size}, palette={self.palette_size or 'none'}, "
            f"max_dimension={self.target_max_dimension or 'none'}"
        )

    def with_overrides(self, **overrides: Any) -> "TranscodeSettings":
        """Return a copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values)


def settings_from_dict(data: Dict[str, Any]) -> TranscodeSettings:
    known = {f.name for f in fields(TranscodeSettings)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown transcode settings: {', '.join(sorted(unknown))}")
    return TranscodeSettings(**data)


def load_settings(config_path: Path = CONFIG_PATH) -> TranscodeSettings:
    """Load the `transcode` section of a YAML file; a missing file yields the defaults."""
    config_path = Path(config_path)
    if not config_path.is_file():
        return TranscodeSettings()
    with open(config_path, "r") as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ConfigError(f"{config_path} must contain a mapping.")
    section = config.get("transcode") or {}
    if not isinstance(section, dict):
        raise ConfigError(f"{config_path}: 'transcode' must be a mapping.")
    return settings_from_dict(section)
