"""
Layout orchestration: visible projection -> engine -> animated commit.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from domainmap.compiler.engines import LayoutEngine, LayoutInput, LayoutItem, LayoutLink, get_layout_engine
from domainmap.compiler.engines.base import Point
from domainmap.compiler.folding import FoldingView
from domainmap.compiler.types import Geometry
from domainmap.config import LAYOUT_ANIMATION_DURATION, LAYOUT_ANIMATION_FRAMES, LAYOUT_TIMEOUT
from domainmap.ir.errors import LayoutFailure

logger = logging.getLogger(__name__)

FrameCallback = Callable[[Dict[str, Geometry], float], None]
DoneCallback = Callable[[Optional["LayoutResult"], Optional[BaseException]], None]


def _lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


@dataclass
class LayoutResult:
    old: Dict[str, Geometry] = field(default_factory=dict)
    new: Dict[str, Geometry] = field(default_factory=dict)
    routes: Dict[str, List[Point]] = field(default_factory=dict)
    crossings: int = 0

    def interpolate(self, t: float) -> Dict[str, Geometry]:
        """Geometry at animation progress `t` (0 = old, 1 = new)."""
        t = min(max(t, 0.0), 1.0)
        frame: Dict[str, Geometry] = {}
        for node_id, target in self.new.items():
            start = self.old.get(node_id, target)
            frame[node_id] = Geometry(
                _lerp(start.x, target.x, t),
                _lerp(start.y, target.y, t),
                _lerp(start.width, target.width, t),
                _lerp(start.height, target.height, t),
            )
        return frame

    def frames(self, count: int) -> List[Dict[str, Geometry]]:
        if count <= 0:
            return [self.interpolate(1.0)]
        return [self.interpolate(i / count) for i in range(1, count + 1)]

    @property
    def moved(self) -> List[str]:
        return [nid for nid, geo in self.new.items() if self.old.get(nid) != geo]

    def to_dict(self) -> dict:
        return {
            "old": {nid: g.to_dict() for nid, g in self.old.items()},
            "new": {nid: g.to_dict() for nid, g in self.new.items()},
            "routes": {eid: [list(p) for p in pts] for eid, pts in self.routes.items()},
            "crossings": self.crossings,
        }


class LayoutHandle:
    """
    A running layout. Await it for the LayoutResult; cancel it to keep the
    pre-layout geometry.
    """

    def __init__(self, task: "asyncio.Task[LayoutResult]"):
        self._task = task

    def __await__(self):
        return self._task.__await__()

    def cancel(self) -> bool:
        return self._task.cancel()

    def cancelled(self) -> bool:
        return self._task.cancelled()

    def done(self) -> bool:
        return self._task.done()

    def result(self) -> LayoutResult:
        return self._task.result()

    def add_done_callback(self, callback: DoneCallback) -> None:
        """`callback(result, None)` on success, `callback(None, error)` on failure or cancellation."""

        def _done(task: asyncio.Task) -> None:
            if task.cancelled():
                callback(None, asyncio.CancelledError())
                return
            error = task.exception()
            callback(None if error else task.result(), error)

        self._task.add_done_callback(_done)


def build_layout_input(view: FoldingView) -> LayoutInput:
    visible = view.visible_nodes()
    visible_ids = {n.id for n in visible}
    items = []
    for node in visible:
        width, height = view.display_size(node)
        items.append(
            LayoutItem(
                id=node.id,
                label=node.label,
                width=width,
                height=height,
                parent=node.parent if node.parent in visible_ids else None,
                container=node.is_group and not view.is_collapsed(node),
            )
        )
    links = [LayoutLink(id=e.id, source=e.source, target=e.target) for e in view.visible_edges()]
    return LayoutInput(nodes=items, edges=links)


class LayoutOrchestrator:
    """
    Runs the layout engine over the currently visible projection.

    Usage:
        orchestrator = LayoutOrchestrator()
        result = await orchestrator.layout(view)
    """

    def __init__(
        self,
        engine: Optional[LayoutEngine] = None,
        timeout: float = LAYOUT_TIMEOUT,
        animation_duration: float = LAYOUT_ANIMATION_DURATION,
        animation_frames: int = LAYOUT_ANIMATION_FRAMES,
    ):
        self.engine = engine if engine is not None else get_layout_engine()
        self.timeout = timeout
        self.animation_duration = animation_duration
        self.animation_frames = animation_frames
        self.runs = 0

    def start(
        self,
        view: FoldingView,
        on_frame: Optional[FrameCallback] = None,
        timeout: Optional[float] = None,
    ) -> LayoutHandle:
        """
        Schedule a layout on the running loop and return its handle.
        `timeout` overrides the orchestrator default for this run only.
        """
        loop = asyncio.get_running_loop()
        return LayoutHandle(loop.create_task(self._run(view, on_frame, timeout)))

    async def layout(
        self,
        view: FoldingView,
        on_frame: Optional[FrameCallback] = None,
        timeout: Optional[float] = None,
    ) -> LayoutResult:
        return await self.start(view, on_frame, timeout)

    async def _run(
        self, view: FoldingView, on_frame: Optional[FrameCallback], timeout: Optional[float] = None
    ) -> LayoutResult:
        if timeout is None:
            timeout = self.timeout
        data = build_layout_input(view)
        old = {item.id: view.display_geometry(item.id).copy() for item in data.nodes}

        try:
            output = await asyncio.wait_for(
                asyncio.to_thread(self.engine.layout, data),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            logger.warning("[LAYOUT] engine timed out after %.1fs", timeout)
            raise LayoutFailure(f"Layout timed out after {timeout}s", e) from e
        except LayoutFailure:
            logger.warning("[LAYOUT] engine reported failure", exc_info=True)
            raise
        except Exception as e:
            logger.warning("[LAYOUT] engine failed: %s", e)
            raise LayoutFailure(f"Layout engine failed: {e}", e) from e

        missing = [item.id for item in data.nodes if item.id not in output.geometry]
        if missing:
            raise LayoutFailure(f"Layout engine returned no geometry for {len(missing)} nodes: {missing[:5]}")

        result = LayoutResult(
            old=old,
            new={item.id: output.geometry[item.id].copy() for item in data.nodes},
            routes=dict(output.routes),
            crossings=output.crossings,
        )

        await self._animate(result, on_frame)
        self._commit(view, result)
        self.runs += 1
        logger.info(
            "[LAYOUT] run %d: %d nodes, %d edges, %d moved, %d crossings",
            self.runs, len(result.new), len(result.routes), len(result.moved), result.crossings,
        )
        return result

    async def _animate(self, result: LayoutResult, on_frame: Optional[FrameCallback]) -> None:
        count = max(self.animation_frames, 1)
        delay = self.animation_duration / count if self.animation_duration > 0 else 0
        for i in range(1, count + 1):
            t = i / count
            if on_frame is not None:
                on_frame(result.interpolate(t), t)
            await asyncio.sleep(delay)

    @staticmethod
    def _commit(view: FoldingView, result: LayoutResult) -> None:
        for node_id, geometry in result.new.items():
            if view.graph.has_node(node_id):
                view.set_display_geometry(node_id, geometry)
