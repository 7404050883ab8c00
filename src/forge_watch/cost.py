"""
Running cost and token tally for the joined session.

The last cost_update received wins; nothing is reordered by time, so a late
packet can move the total backwards. Only the *display* animates.
"""

import logging
from typing import Optional, Union

from forge_watch.clock import TimerGroup, TimerHandle
from forge_watch.models.session import DEFAULT_MAX_TOKENS
from forge_watch.renderer import Renderer

logger = logging.getLogger(__name__)

ANIMATION_DURATION_S = 0.8
ANIMATION_FPS = 60

Amount = Union[float, int, str]


def ease_out_cubic(t: float) -> float:
    return 1 - (1 - t) ** 3


class CostAccumulator:
    def __init__(
        self,
        timers: TimerGroup,
        renderer: Renderer,
        duration_s: float = ANIMATION_DURATION_S,
        fps: int = ANIMATION_FPS,
    ):
        self._timers = timers
        self._renderer = renderer
        self._duration_ms = duration_s * 1000
        self._frame_s = 1 / fps
        self.total_usd = 0.0
        self.displayed_usd = 0.0
        self.token_current = 0
        self.token_max = DEFAULT_MAX_TOKENS
        self._animation: Optional[TimerHandle] = None
        self._anim_from = 0.0
        self._anim_start = 0.0

    @property
    def animating(self) -> bool:
        return self._animation is not None

    @property
    def display_usd(self) -> str:
        return f"${self.displayed_usd:.4f}"

    @property
    def display_tokens(self) -> str:
        return f"{self.token_current:,}/{self.token_max:,} tokens"

    def set(self, total_usd: Amount) -> None:
        """Authoritative value from a join snapshot; shown without animation."""
        self._stop()
        self.total_usd = self.displayed_usd = float(total_usd)
        self._renderer.render_cost(self.display_usd)

    def update(self, total_usd: Amount) -> None:
        """Live value: adopted now, displayed by animating toward it."""
        value = float(total_usd)
        if value < self.total_usd:
            logger.debug("Cost went backwards: %.4f -> %.4f", self.total_usd, value)
        self.total_usd = value
        if self.displayed_usd == value:
            self._stop()
            return
        self._anim_from = self.displayed_usd
        self._anim_start = self._timers.clock.now()
        if self._animation is None:
            self._animation = self._timers.call_every(self._frame_s, self._frame)

    def set_tokens(self, current: int, maximum: Optional[int] = None) -> None:
        self.token_current = int(current)
        if maximum is not None:
            self.token_max = int(maximum)
        self._renderer.render_tokens(self.display_tokens)

    def close(self) -> None:
        self._stop()

    def _frame(self) -> None:
        progress = min(1.0, (self._timers.clock.now() - self._anim_start) / self._duration_ms)
        if progress >= 1.0:
            self.displayed_usd = self.total_usd
            self._stop()
        else:
            self.displayed_usd = self._anim_from + (self.total_usd - self._anim_from) * ease_out_cubic(progress)
        self._renderer.render_cost(self.display_usd)

    def _stop(self) -> None:
        if self._animation is not None:
            self._animation.cancel()
            self._animation = None
