import dataclasses
from typing import List, Optional

MAINTSCRIPT_TOKEN = "#DEBHELPER#"

STD_CONTROL_SCRIPTS = frozenset(
    {
        "preinst",
        "prerm",
        "postinst",
        "postrm",
    }
)
# Order in which maintainer scripts are looked up and added to the archive
ALL_MAINTAINER_SCRIPTS = (
    "config",
    "preinst",
    "postinst",
    "prerm",
    "postrm",
    "templates",
)
REVERSED_ORDER_SCRIPTS = frozenset({"prerm", "postrm"})


@dataclasses.dataclass(slots=True, frozen=True)
class MaintscriptSnippet:
    definition_source: str
    snippet: str

    def script_content(self) -> str:
        lines = [
            f"# Snippet source: {self.definition_source}\n",
            self.snippet,
        ]
        if not self.snippet.endswith("\n"):
            lines.append("\n")
        return "".join(lines)


class MaintscriptSnippetContainer:
    def __init__(self) -> None:
        self._snippets: List[MaintscriptSnippet] = []

    def append(self, maintscript_snippet: MaintscriptSnippet) -> None:
        self._snippets.append(maintscript_snippet)

    def generate_snippet(
        self,
        tool_with_version: Optional[str] = None,
        reverse: bool = False,
    ) -> Optional[str]:
        snippets = reversed(self._snippets) if reverse else self._snippets
        inner_content = "".join(s.script_content() for s in snippets)

        if not inner_content:
            return None

        if tool_with_version:
            return (
                f"# Automatically added by {tool_with_version}\n"
                + inner_content
                + "# End automatically added section\n"
            )
        return inner_content
