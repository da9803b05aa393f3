"""
Human-Like Behavior Simulation for visual-scout.

Delays and pointer drags shaped like a person's, used to get past the
marketplace's slide challenge. Randomness comes from an injectable
``random.Random`` so trajectories can be asserted exactly in tests.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import List, Tuple

logger = logging.getLogger(__name__)


def human_delay_ms(min_ms: int = 500, max_ms: int = 3000, rng: random.Random = None) -> float:
    """
    Generate a human-like delay in milliseconds using normal distribution.

    Center of distribution is at (min + max) / 2, with sigma covering
    the range. Values are clamped to [min, max].
    """
    rng = rng or random
    center = (min_ms + max_ms) / 2
    sigma = (max_ms - min_ms) / 4  # ~95% within range
    delay = rng.gauss(center, sigma)
    return max(min_ms, min(max_ms, delay))


async def human_delay(min_ms: int = 500, max_ms: int = 3000, rng: random.Random = None):
    """Sleep for a human-like duration."""
    delay_ms = human_delay_ms(min_ms, max_ms, rng)
    await asyncio.sleep(delay_ms / 1000)


def ease_out_cubic(t: float) -> float:
    """Fast start, slow finish: 1 - (1 - t)^3."""
    return 1 - (1 - t) ** 3


@dataclass
class DragTiming:
    """Knobs for a simulated drag. Zero jitter plus a seeded rng is deterministic."""
    min_steps: int = 25
    max_steps: int = 34
    y_jitter_px: float = 1.0
    step_delay_min_ms: int = 10
    step_delay_max_ms: int = 30
    rng: random.Random = field(default_factory=random.Random)

    def step_count(self) -> int:
        return self.rng.randint(self.min_steps, self.max_steps)


def drag_trajectory(
    start_x: float,
    start_y: float,
    distance: float,
    steps: int,
    y_jitter_px: float = 0.0,
    rng: random.Random = None,
) -> List[Tuple[float, float]]:
    """Pointer positions for an eased horizontal drag, excluding the start point.

    The last point always lands exactly ``distance`` px right of the start.
    """
    rng = rng or random
    points = []
    for i in range(1, steps + 1):
        eased = ease_out_cubic(i / steps)
        x = start_x + distance * eased
        y = start_y + (rng.uniform(-1, 1) * y_jitter_px if y_jitter_px else 0.0)
        points.append((x, y))
    return points


async def human_drag(page, box: dict, distance: float, timing: DragTiming = None) -> None:
    """Press on the center of ``box`` and drag it right along an eased path."""
    timing = timing or DragTiming()
    start_x = box["x"] + box["width"] / 2
    start_y = box["y"] + box["height"] / 2

    logger.info(f"Dragging slider from ({start_x:.0f}, {start_y:.0f}), distance {distance}px")

    await page.mouse.move(start_x, start_y)
    await human_delay(200, 400, timing.rng)
    await page.mouse.down()
    await human_delay(100, 200, timing.rng)

    points = drag_trajectory(
        start_x, start_y, distance, timing.step_count(), timing.y_jitter_px, timing.rng
    )
    for x, y in points:
        await page.mouse.move(x, y)
        await human_delay(timing.step_delay_min_ms, timing.step_delay_max_ms, timing.rng)

    await human_delay(100, 200, timing.rng)
    await page.mouse.up()
