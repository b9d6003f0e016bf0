from typing import Protocol, List

from debcontrol.util import _info, _warn


class Listener(Protocol):
    """Receiver of progress messages emitted while building the control archive

    Listeners are purely observational; they never influence the generated
    content.
    """

    def info(self, msg: str) -> None: ...

    def warning(self, msg: str) -> None: ...


class LoggingListener:
    def info(self, msg: str) -> None:
        _info(msg)

    def warning(self, msg: str) -> None:
        _warn(msg)


class RecordingListener:
    def __init__(self) -> None:
        self.info_messages: List[str] = []
        self.warning_messages: List[str] = []

    def info(self, msg: str) -> None:
        self.info_messages.append(msg)

    def warning(self, msg: str) -> None:
        self.warning_messages.append(msg)

