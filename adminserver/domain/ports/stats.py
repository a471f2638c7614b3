from typing import Any, Iterator, Protocol, Tuple


class Var(Protocol):
    def value(self) -> Any:
        """Current value as a plain Python object."""
        pass

    def json(self) -> str:
        """Current value encoded as a JSON document."""
        pass


class StatsRegistryPort(Protocol):
    def publish(self, name: str, var: Var) -> None:
        pass

    def items(self) -> Iterator[Tuple[str, Var]]:
        pass
