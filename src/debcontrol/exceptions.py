from typing import cast


class DebcontrolRuntimeError(RuntimeError):
    @property
    def message(self) -> str:
        return cast("str", self.args[0])


class MaintscriptTokenMissingError(DebcontrolRuntimeError):
    @property
    def script_path(self) -> str:
        return cast("str", self.args[1])


class ManifestException(DebcontrolRuntimeError):
    pass


class ManifestParseException(ManifestException):
    pass


class ManifestTypeException(ManifestParseException):
    pass


class DebcontrolFSError(DebcontrolRuntimeError):
    pass
