from .version import __version__

DEBCONTROL_TOOL_NAME = "debcontrol"


def tool_with_version() -> str:
    return f"{DEBCONTROL_TOOL_NAME}/{__version__}"
