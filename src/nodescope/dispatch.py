"""Remote dispatch boundary.

A Transport executes a named Inspector operation on a node and returns
its result, or raises TransportError when the node cannot be reached or
the call did not complete. The facade turns that error into a
TransportFailure value.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Protocol

from nodescope.inspector import Inspector

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """The operation could not be executed on the target node."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


@dataclass(slots=True, frozen=True)
class TransportFailure:
    """Result returned in place of an operation's value when dispatch fails."""

    node: str
    operation: str
    reason: str


class Transport(Protocol):
    def call(self, node: str, operation: str, args: tuple[Any, ...]) -> Any: ...


class LocalTransport:
    """
    In-process transport dispatching to registered Inspector instances.

    Useful for tests and for inspecting the current host without a network
    hop. With a timeout, each call runs on a daemon thread that is
    abandoned (not cancelled) if it does not finish in time.
    """

    def __init__(
        self,
        inspectors: dict[str, Inspector] | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize the LocalTransport.

        Args:
            inspectors: Inspectors keyed by node name.
            timeout: Seconds to wait for a call. None waits forever.
        """
        self._inspectors: dict[str, Inspector] = dict(inspectors or {})
        self._timeout = timeout

    def register(self, inspector: Inspector) -> None:
        self._inspectors[inspector.node] = inspector

    @property
    def nodes(self) -> list[str]:
        return list(self._inspectors)

    def call(self, node: str, operation: str, args: tuple[Any, ...]) -> Any:
        inspector = self._inspectors.get(node)
        if inspector is None:
            raise TransportError("nodedown")

        target = getattr(inspector, operation, None)
        if operation.startswith("_") or not callable(target):
            raise TransportError(f"undef: {operation}")

        if self._timeout is None:
            return self._invoke(target, args)
        return self._invoke_with_timeout(target, args)

    def _invoke(self, target, args: tuple[Any, ...]) -> Any:
        try:
            return target(*args)
        except Exception as exc:
            raise TransportError(f"EXIT: {exc!r}") from exc

    def _invoke_with_timeout(self, target, args: tuple[Any, ...]) -> Any:
        outcome: dict[str, Any] = {}

        def run() -> None:
            try:
                outcome["result"] = self._invoke(target, args)
            except TransportError as exc:
                outcome["error"] = exc

        thread = threading.Thread(target=run, daemon=True, name="LocalTransportCall")
        thread.start()
        thread.join(timeout=self._timeout)

        if thread.is_alive():
            raise TransportError("timeout")
        if "error" in outcome:
            raise outcome["error"]
        return outcome["result"]
