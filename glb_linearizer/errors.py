"""
Error taxonomy for GLB conversion.

Container and layout errors are fatal for a run. Texture errors are caught by
the transcoder and degrade to keeping the original image bytes.
"""


class GlbError(RuntimeError):
    pass


class ContainerError(GlbError):
    pass


class MalformedContainer(ContainerError):
    """Bad magic, unsupported version, truncated data or out-of-range views."""


class MissingManifest(ContainerError):
    """The first chunk is absent or is not the JSON chunk."""


class InvalidManifestEncoding(ContainerError):
    """The JSON chunk is not UTF-8 or not a JSON object."""


class TextureError(GlbError):
    def __init__(self, message: str, texture_name: str | None = None):
        super().__init__(message)
        self.texture_name = texture_name


class DecodeFailure(TextureError):
    pass


class EncodeFailure(TextureError):
    pass


class MissingDimensions(TextureError):
    pass


class LayoutAssemblyMismatch(GlbError):
    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"Mismatch in binary chunk construction. Expected size: {expected}, actual size: {actual}"
        )
        self.expected = expected
        self.actual = actual


class ConfigError(GlbError, ValueError):
    pass
