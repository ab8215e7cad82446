"""Coordinator running render -> extract -> normalize -> extrude for one request."""

from __future__ import annotations

from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
import threading
from typing import Any, Dict, List, Optional, Tuple

from shadow_monster.config import MonsterConfig
from shadow_monster.errors import GenerationCancelled, RenderError
from shadow_monster.geometry.contour_models import CanonicalPolygon, ContourSet
from shadow_monster.geometry.mask import Mask
from shadow_monster.integration.contours.contour_extractor import ContourExtractor
from shadow_monster.integration.contours.polygon_normalizer import PolygonNormalizer
from shadow_monster.integration.mesh.dynamic_extrusion import (
    DynamicExtrusionController,
)
from shadow_monster.integration.mesh.extruder import MeshExtruder
from shadow_monster.integration.mesh.solid import ExtrusionHandle, Solid
from shadow_monster.integration.render.shadow_renderer import SceneRenderer
from shadow_monster.scene.models import SceneConfig
from shadow_monster.scene.primitives import GeometryCache
from shadow_monster.utils.generation_context import GenerationContext
from shadow_monster.utils.manifest import build_manifest, describe_solid

STATUS_OK = "ok"
STATUS_NO_SILHOUETTE = "no_silhouette"
STATUS_CANCELLED = "cancelled"


class CancellationToken:
    """Flag a caller sets to abandon an in-flight generation request."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise GenerationCancelled("generation request was cancelled")


@dataclass
class GenerationResult:
    """Outcome of one generation request.

    ``status`` is ``"ok"`` when a solid was built, ``"no_silhouette"`` when
    the scene casts no usable shadow, and ``"cancelled"`` when the caller
    abandoned the request.
    """

    status: str
    context: GenerationContext
    mask: Optional[Mask] = None
    contours: Optional[ContourSet] = None
    polygon: Optional[CanonicalPolygon] = None
    parts: Tuple[CanonicalPolygon, ...] = ()
    solid: Optional[Solid] = None
    handle: Optional[ExtrusionHandle] = None
    warnings: List[str] = field(default_factory=list)
    manifest: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    @property
    def no_silhouette(self) -> bool:
        return self.status == STATUS_NO_SILHOUETTE

    def outputs(self) -> Dict[str, Any]:
        outputs: Dict[str, Any] = {"status": self.status}
        if self.mask is not None:
            outputs["mask_resolution"] = list(self.mask.resolution)
            outputs["mask_digest"] = self.mask.digest()
        if self.contours is not None:
            outputs["contours"] = len(self.contours)
        if self.polygon is not None:
            outputs["polygon_points"] = self.polygon.edge_count
            outputs["parts"] = len(self.parts)
        if self.solid is not None:
            outputs["depth"] = self.solid.depth
            outputs["vertices"] = self.solid.vertex_count
            outputs["faces"] = self.solid.face_count
        return outputs


class MonsterPipeline:
    """Run the shadow-to-monster stages strictly in sequence.

    Each request gets its own GenerationContext and renderer. Unless a shared
    GeometryCache is passed in, each request also builds its own cache.
    """

    def __init__(
        self,
        config: Optional[MonsterConfig] = None,
        cache: Optional[GeometryCache] = None,
        echo_logs: bool = True,
    ) -> None:
        self.config = config or MonsterConfig()
        self.config.validate()
        self.cache = cache
        self.echo_logs = echo_logs
        self.controller = DynamicExtrusionController(self.config.control)
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

    def __enter__(self) -> "MonsterPipeline":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    def new_context(self, label: str = "monster") -> GenerationContext:
        return GenerationContext(
            request_label=label, echo=self.echo_logs, config=self.config
        )

    def generate(
        self,
        scene: SceneConfig,
        cancel: Optional[CancellationToken] = None,
        context: Optional[GenerationContext] = None,
    ) -> GenerationResult:
        """
        Turn a scene's cast shadow into an extruded solid.

        An empty shadow is a normal outcome reported as
        ``status == "no_silhouette"``. Render errors propagate.

        Args:
            scene: Immutable scene snapshot
            cancel: Optional token checked between stages
            context: Optional run context (a new one is created otherwise)

        Returns:
            GenerationResult with its manifest filled in
        """
        context = context or self.new_context()
        result = GenerationResult(status=STATUS_OK, context=context)
        try:
            self._run(scene, result, cancel)
        except GenerationCancelled:
            result.status = STATUS_CANCELLED
            result.solid = None
            result.handle = None
            context.log("WARN", "generation cancelled")
        except RenderError as exc:
            context.log("ERROR", "render failed", error=type(exc).__name__)
            raise

        self._write_manifest(result)
        context.log("INFO", "generation finished", status=result.status)
        return result

    def _write_manifest(self, result: GenerationResult) -> None:
        monster = describe_solid(result.solid) if result.solid is not None else None
        result.manifest = build_manifest(
            result.context,
            outputs=result.outputs(),
            warnings=result.warnings,
            monster=monster,
        )

    def _run(
        self,
        scene: SceneConfig,
        result: GenerationResult,
        cancel: Optional[CancellationToken],
    ) -> None:
        cfg = self.config
        context = result.context

        def checkpoint() -> None:
            if cancel is not None:
                cancel.raise_if_cancelled()

        checkpoint()
        renderer = SceneRenderer(
            cfg.render, cache=self.cache or GeometryCache(), context=context
        )
        with context.time_block("render") as produced:
            result.mask = renderer.render(scene)
            produced["resolution"] = list(result.mask.resolution)
            produced["shadow_fraction"] = round(result.mask.shadow_fraction(), 6)

        checkpoint()
        extractor = ContourExtractor(cfg.contours, context=context)
        with context.time_block("extract") as produced:
            result.contours = extractor.extract(result.mask)
            produced["contours"] = len(result.contours)
            produced["outer"] = len(result.contours.outer())
        if result.contours.is_empty:
            result.status = STATUS_NO_SILHOUETTE
            context.log("INFO", "no silhouette found", stage="extract")
            return

        checkpoint()
        normalizer = PolygonNormalizer(cfg.normalize, context=context)
        with context.time_block("normalize") as produced:
            if cfg.normalize.secondary_policy == "parts":
                normalized = normalizer.normalize_parts(result.contours)
                if normalized is not None:
                    result.polygon, result.parts = normalized
            else:
                result.polygon = normalizer.normalize(result.contours)
            if result.polygon is not None:
                produced["points"] = result.polygon.edge_count
                produced["parts"] = len(result.parts)
        if result.polygon is None:
            result.status = STATUS_NO_SILHOUETTE
            context.log("INFO", "no silhouette found", stage="normalize")
            return

        discarded = len(result.contours.outer()) - 1 - len(result.parts)
        if discarded > 0:
            result.warnings.append(
                f"{discarded} secondary contour(s) not included in the solid"
            )

        checkpoint()
        extruder = MeshExtruder(cfg.extrude, context=context)
        with context.time_block("extrude") as produced:
            if result.parts:
                solid, handle = extruder.extrude_parts(result.polygon, result.parts)
            else:
                solid, handle = extruder.extrude(result.polygon)
            produced["vertices"] = solid.vertex_count
            produced["faces"] = solid.face_count
            produced["depth"] = solid.depth
        checkpoint()
        result.solid, result.handle = solid, handle

    def generate_async(
        self,
        scene: SceneConfig,
        executor: Optional[Executor] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> "Future[GenerationResult]":
        """Submit a generation request so it runs off the caller's thread."""
        if executor is None:
            with self._executor_lock:
                if self._executor is None:
                    self._executor = ThreadPoolExecutor(
                        max_workers=1, thread_name_prefix="monster"
                    )
                executor = self._executor
        return executor.submit(self.generate, scene, cancel)

    def set_depth(self, result: GenerationResult, depth: float) -> None:
        """Set a solid's depth through the controller and refresh the manifest."""
        if result.handle is None:
            raise ValueError(f"result has no solid (status={result.status})")
        self.controller.set_depth(result.handle, depth)
        self._write_manifest(result)
