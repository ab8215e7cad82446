"""Shadow monster: turn a room's cast shadow into an extrudable 3D solid."""

from shadow_monster.config import MonsterConfig, load_config
from shadow_monster.pipeline import CancellationToken, GenerationResult, MonsterPipeline

__version__ = "0.1.0"

__all__ = [
    "CancellationToken",
    "GenerationResult",
    "MonsterConfig",
    "MonsterPipeline",
    "load_config",
]
