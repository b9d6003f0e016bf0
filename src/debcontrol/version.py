from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("debcontrol")
except PackageNotFoundError:
    __version__ = "N/A"
