# client/panels.py
"""
Canvas and graph panel state machines.

The drawing widget and the Desmos calculator are external; the panels only
track their lifecycle. Readiness is signalled explicitly (``mount`` and
``library_loaded``) and awaited with a bounded timeout instead of polled.
"""
import asyncio
import logging
from enum import Enum
from typing import List, Optional, Protocol, Sequence

from graphmentor.errors import CanvasNotReady, LibraryLoadTimeout

logger = logging.getLogger(__name__)


class DrawingSurface(Protocol):
    def to_data_url(self) -> Optional[str]: ...


class Calculator(Protocol):
    def set_blank(self) -> None: ...

    def set_expressions(self, expressions: List[dict]) -> None: ...

    def destroy(self) -> None: ...


class CanvasState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"      # panel visible, surface not mounted yet
    READY = "ready"    # snapshot capability available


class CanvasPanel:
    def __init__(self):
        self.state = CanvasState.CLOSED
        self._surface: Optional[DrawingSurface] = None
        self._mounted = asyncio.Event()

    def open(self) -> None:
        if self.state == CanvasState.CLOSED:
            self.state = CanvasState.READY if self._surface else CanvasState.OPEN

    def close(self) -> None:
        self.unmount()
        self.state = CanvasState.CLOSED

    def toggle(self) -> None:
        if self.state == CanvasState.CLOSED:
            self.open()
        else:
            self.close()

    def mount(self, surface: DrawingSurface) -> None:
        """Called by the drawing widget once it can produce snapshots."""
        self._surface = surface
        if self.state != CanvasState.CLOSED:
            self.state = CanvasState.READY
        self._mounted.set()
        logger.debug("Canvas surface mounted")

    def unmount(self) -> None:
        self._surface = None
        self._mounted.clear()
        if self.state == CanvasState.READY:
            self.state = CanvasState.OPEN

    async def request_snapshot(self, timeout: float = 0.15) -> Optional[str]:
        """PNG data URL of the current drawing; CanvasNotReady if nothing mounts in time."""
        if self.state == CanvasState.CLOSED:
            raise CanvasNotReady("Canvas Not Ready", details="Open the canvas and try again.")
        if self._surface is None:
            try:
                await asyncio.wait_for(self._mounted.wait(), timeout)
            except asyncio.TimeoutError:
                raise CanvasNotReady("Canvas Not Ready", details="Please wait a moment and try again.")
        return self._surface.to_data_url()


class GraphState(str, Enum):
    CLOSED = "closed"
    LOADING = "loading"
    READY_BLANK = "ready_blank"
    READY_PLOTTED = "ready_plotted"


READY_STATES = (GraphState.READY_BLANK, GraphState.READY_PLOTTED)


class GraphPanel:
    def __init__(self, load_timeout: float = 10.0):
        self.state = GraphState.CLOSED
        self.load_timeout = load_timeout
        self.calculator: Optional[Calculator] = None
        self.expressions: List[str] = []
        self._ready = asyncio.Event()

    @property
    def is_open(self) -> bool:
        return self.state != GraphState.CLOSED

    def open(self) -> None:
        if self.state == GraphState.CLOSED:
            self.state = GraphState.LOADING

    def close(self) -> None:
        if self.calculator is not None:
            logger.debug("Destroying Desmos calculator instance")
            self.calculator.destroy()
        self.calculator = None
        self.expressions = []
        self._ready.clear()
        self.state = GraphState.CLOSED

    def toggle(self) -> None:
        if self.is_open:
            self.close()
        else:
            self.open()

    def library_loaded(self, calculator: Calculator) -> None:
        """One-shot ready signal from the widget host."""
        if self.state != GraphState.LOADING:
            logger.warning(f"Ignoring calculator delivered while panel is {self.state.value}")
            return
        self.calculator = calculator
        self.state = GraphState.READY_BLANK
        self._ready.set()

    async def wait_ready(self, timeout: Optional[float] = None) -> None:
        if self.state in READY_STATES:
            return
        self.open()
        timeout = self.load_timeout if timeout is None else timeout
        try:
            await asyncio.wait_for(self._ready.wait(), timeout)
        except asyncio.TimeoutError:
            raise LibraryLoadTimeout("Desmos failed to load", details=f"not ready after {timeout}s")

    def _apply(self, expressions: Sequence[str]) -> None:
        # blank first so nothing from a previous answer survives
        self.calculator.set_blank()
        self.calculator.set_expressions(
            [{"id": f"expr-{i}", "latex": expr} for i, expr in enumerate(expressions)]
        )
        self.expressions = list(expressions)
        self.state = GraphState.READY_PLOTTED if self.expressions else GraphState.READY_BLANK

    async def plot(self, expressions: Sequence[str], timeout: Optional[float] = None) -> None:
        """Open if needed, wait for the library, and replace the plotted set."""
        await self.wait_ready(timeout)
        self._apply(expressions)
        logger.info(f"Plotted {len(self.expressions)} expression(s)")

    def clear(self) -> None:
        if self.state in READY_STATES:
            self._apply([])
        else:
            self.expressions = []
