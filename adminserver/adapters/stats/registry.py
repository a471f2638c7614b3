from __future__ import annotations

import gc
import json
import sys
import threading
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from adminserver.domain.errors import DuplicateVariable
from adminserver.domain.ports.stats import StatsRegistryPort, Var


class Int:
    def __init__(self, initial: int = 0) -> None:
        self._lock = threading.Lock()
        self._value = initial

    def add(self, delta: int = 1) -> None:
        with self._lock:
            self._value += delta

    def set(self, value: int) -> None:
        with self._lock:
            self._value = value

    def value(self) -> int:
        with self._lock:
            return self._value

    def json(self) -> str:
        return json.dumps(self.value())


class Float:
    def __init__(self, initial: float = 0.0) -> None:
        self._lock = threading.Lock()
        self._value = float(initial)

    def add(self, delta: float) -> None:
        with self._lock:
            self._value += delta

    def set(self, value: float) -> None:
        with self._lock:
            self._value = float(value)

    def value(self) -> float:
        with self._lock:
            return self._value

    def json(self) -> str:
        return json.dumps(self.value())


class String:
    def __init__(self, initial: str = '') -> None:
        self._lock = threading.Lock()
        self._value = initial

    def set(self, value: str) -> None:
        with self._lock:
            self._value = value

    def value(self) -> str:
        with self._lock:
            return self._value

    def json(self) -> str:
        return json.dumps(self.value())


class Map:
    """A string-keyed collection of vars, rendered as a nested JSON object."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._vars: Dict[str, Var] = {}

    def get(self, key: str) -> Optional[Var]:
        with self._lock:
            return self._vars.get(key)

    def set(self, key: str, var: Var) -> None:
        with self._lock:
            self._vars[key] = var

    def add(self, key: str, delta: int = 1) -> None:
        with self._lock:
            var = self._vars.get(key)
            if var is None:
                var = self._vars[key] = Int()
        var.add(delta)

    def add_float(self, key: str, delta: float) -> None:
        with self._lock:
            var = self._vars.get(key)
            if var is None:
                var = self._vars[key] = Float()
        var.add(delta)

    def _snapshot(self) -> List[Tuple[str, Var]]:
        with self._lock:
            return list(self._vars.items())

    def value(self) -> Dict[str, Any]:
        return {k: v.value() for k, v in self._snapshot()}

    def json(self) -> str:
        parts = [f'{json.dumps(k)}: {v.json()}' for k, v in self._snapshot()]
        return '{' + ', '.join(parts) + '}'


class Func:
    def __init__(self, fn: Callable[[], Any]) -> None:
        self._fn = fn

    def value(self) -> Any:
        return self._fn()

    def json(self) -> str:
        return json.dumps(self._fn(), default=str)


class StatsRegistry(StatsRegistryPort):
    """Thread-safe registry of published variables.

    Names are unique for the lifetime of the registry; iteration follows
    publish order.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._vars: Dict[str, Var] = {}

    def publish(self, name: str, var: Var) -> None:
        with self._lock:
            if name in self._vars:
                raise DuplicateVariable(name)
            self._vars[name] = var

    def get(self, name: str) -> Optional[Var]:
        with self._lock:
            return self._vars.get(name)

    def items(self) -> Iterator[Tuple[str, Var]]:
        # Snapshot so a concurrent publish never breaks a reader mid-walk.
        with self._lock:
            snapshot = list(self._vars.items())
        return iter(snapshot)

    def __len__(self) -> int:
        with self._lock:
            return len(self._vars)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._vars

    def new_int(self, name: str) -> Int:
        var = Int()
        self.publish(name, var)
        return var

    def new_float(self, name: str) -> Float:
        var = Float()
        self.publish(name, var)
        return var

    def new_string(self, name: str) -> String:
        var = String()
        self.publish(name, var)
        return var

    def new_map(self, name: str) -> Map:
        var = Map()
        self.publish(name, var)
        return var

    def new_func(self, name: str, fn: Callable[[], Any]) -> Func:
        var = Func(fn)
        self.publish(name, var)
        return var


def _gc_stats() -> Dict[str, Any]:
    return {
        'count': list(gc.get_count()),
        'generations': gc.get_stats(),
    }


def default_registry() -> StatsRegistry:
    registry = StatsRegistry()
    registry.new_func('cmdline', lambda: list(sys.argv))
    registry.new_func('gc', _gc_stats)
    return registry
