from typing import Protocol


class LogLevelPort(Protocol):
    @property
    def level(self) -> str:
        pass

    def set_level(self, name: str) -> None:
        """
        Apply the named level to the managed logger.
        Raises InvalidLogLevel when the name is not recognized.
        """
        pass
