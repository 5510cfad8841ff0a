"""spvgen - SPIR-V style serialization code generator."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("spvgen")
except PackageNotFoundError:
    __version__ = "(local)"
