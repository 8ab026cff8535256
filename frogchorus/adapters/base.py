"""
Base adapter protocol.

Adapters transform AgentSnapshots for displays and other consumers.
frogchorus does not ship a user interface; adapters are the seam.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, TypeVar

from frogchorus.core.packet import AgentSnapshot


T = TypeVar("T")


class Adapter(ABC, Generic[T]):
    """
    Abstract base for output adapters.

    Usage:
        class MyAdapter(Adapter[MyOutputType]):
            def transform(self, snapshot: AgentSnapshot) -> MyOutputType:
                return MyOutputType(...)
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique adapter name."""
        ...

    @abstractmethod
    def transform(self, snapshot: AgentSnapshot) -> T:
        """
        Transform an AgentSnapshot to target format.

        Args:
            snapshot: The AgentSnapshot to transform

        Returns:
            Transformed output in target format
        """
        ...

    def batch_transform(self, snapshots: list[AgentSnapshot]) -> list[T]:
        """Transform multiple snapshots. Override for optimization."""
        return [self.transform(s) for s in snapshots]


class DictAdapter(Adapter[dict[str, Any]]):
    """
    Converts AgentSnapshot to a dictionary.

    With debug off only the fields a listener display needs are kept;
    with debug on the drives and live measurements are included.
    """

    def __init__(self, debug: bool = False) -> None:
        self._debug = debug

    @property
    def name(self) -> str:
        return "dict"

    @property
    def debug(self) -> bool:
        return self._debug

    def transform(self, snapshot: AgentSnapshot) -> dict[str, Any]:
        return snapshot.to_dict(debug=self._debug)


class CallbackAdapter(Adapter[None]):
    """
    Adapter that invokes a callback for each snapshot.

    Useful for event-driven displays.
    """

    def __init__(self, callback: Callable[[AgentSnapshot], None]) -> None:
        self._callback = callback

    @property
    def name(self) -> str:
        return "callback"

    def transform(self, snapshot: AgentSnapshot) -> None:
        self._callback(snapshot)
