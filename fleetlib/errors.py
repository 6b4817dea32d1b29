from __future__ import annotations


class FleetError(RuntimeError):
    """Base class for every failure raised by the fleet launcher."""


class ConfigMissing(FleetError):
    pass


class ConfigMalformed(FleetError):
    pass


class ConfigInvalid(FleetError):
    pass


class ExternalToolMissing(FleetError):
    pass


class CommandNotRun(FleetError):
    """The external tool could not be executed at all (missing binary, bad cwd)."""

    def __init__(self, args: list[str], reason: str) -> None:
        super().__init__(f"Could not run {' '.join(args)}: {reason}")
        self.command = list(args)
        self.reason = reason


class CommandFailed(FleetError):
    """The external tool ran and reported failure through its exit status."""

    def __init__(self, args: list[str], returncode: int) -> None:
        super().__init__(f"{' '.join(args)} exited with code {returncode}")
        self.command = list(args)
        self.returncode = returncode
