"""Resize Flap Guard - 阻断 A↔B 来回抖动的 resize

外部尺寸来源（终端 / PTY 尺寸协商）可能在两个尺寸之间无限来回，
两个过滤器分别守护两端：
- ResizeFlapGuard: 应用端，决定是否把上报的尺寸应用到叶子
- ResizeEmitGuard: 上报端，决定是否发送本地测得的尺寸

二者都只保留最近两次接受的尺寸，不保存历史。
"""

import time
from dataclasses import dataclass
from enum import Enum

from ..config import (
    RESIZE_EMIT_BLOCK_SECONDS,
    RESIZE_EMIT_MIN_INTERVAL_SECONDS,
    RESIZE_FLAP_BLOCK_SECONDS,
)
from ..telemetry import get_logger, metrics

logger = get_logger(__name__)


@dataclass(frozen=True)
class TerminalSize:
    """终端尺寸（列 × 行）"""
    cols: int
    rows: int

    def __str__(self) -> str:
        return f"{self.cols}x{self.rows}"


class GuardState(Enum):
    """IDLE: 无封锁；ARMED: 检测到 A→B→A，正在封锁这一对尺寸"""
    IDLE = "idle"
    ARMED = "armed"


class ResizeFlapGuard:
    """应用端 flap guard

    规则（按顺序）：
    1. 与最近一次接受的尺寸相同：拒绝
    2. 处于封锁期且尺寸属于被封锁的一对：拒绝
    3. 等于倒数第二次接受的尺寸（A→B→A）：封锁 (A, B)，拒绝
    4. 否则接受，并解除封锁
    """

    def __init__(self, block_seconds: float = RESIZE_FLAP_BLOCK_SECONDS, name: str = ""):
        self.block_seconds = block_seconds
        self.name = name
        self.last_applied: TerminalSize | None = None
        self.previous_applied: TerminalSize | None = None
        self.blocked_pair: tuple[TerminalSize, TerminalSize] | None = None
        self.blocked_until = 0.0

    def state(self, now: float | None = None) -> GuardState:
        now = time.time() if now is None else now
        if self.blocked_pair is not None and now < self.blocked_until:
            return GuardState.ARMED
        return GuardState.IDLE

    def _is_blocked(self, size: TerminalSize, now: float) -> bool:
        return self.state(now) is GuardState.ARMED and size in self.blocked_pair

    def should_apply_resize(self, cols: int, rows: int, now: float | None = None) -> bool:
        """是否应用该尺寸

        Args:
            cols: 候选宽度（列）
            rows: 候选高度（行）
            now: 时间戳（秒），默认当前时间

        Returns:
            True 表示接受并记录
        """
        now = time.time() if now is None else now
        candidate = TerminalSize(cols, rows)

        if candidate == self.last_applied:
            return False

        if self._is_blocked(candidate, now):
            metrics.inc("resize.rejected", {"reason": "blocked"})
            return False

        if (
            self.previous_applied is not None
            and self.last_applied is not None
            and candidate == self.previous_applied
        ):
            self.blocked_pair = (self.previous_applied, self.last_applied)
            self.blocked_until = now + self.block_seconds
            metrics.inc("resize.rejected", {"reason": "flap"})
            logger.warning(
                f"[FlapGuard] {self.name or 'guard'} blocked {self.previous_applied}<->{self.last_applied} "
                f"for {self.block_seconds:.0f}s"
            )
            return False

        self.previous_applied = self.last_applied
        self.last_applied = candidate
        self.blocked_pair = None
        self.blocked_until = 0.0
        return True

    def reset(self) -> None:
        self.last_applied = None
        self.previous_applied = None
        self.blocked_pair = None
        self.blocked_until = 0.0


def should_apply_resize(
    guard: ResizeFlapGuard, cols: int, rows: int, now: float | None = None
) -> bool:
    """函数形式的 ResizeFlapGuard.should_apply_resize"""
    return guard.should_apply_resize(cols, rows, now)


class ResizeEmitGuard:
    """上报端 guard

    非强制上报需要同一尺寸连续出现两次才发送，并受最小发送间隔限制；
    重复尺寸不发送；A→B→A 时短暂封锁这一对尺寸。
    """

    def __init__(
        self,
        min_interval_seconds: float = RESIZE_EMIT_MIN_INTERVAL_SECONDS,
        block_seconds: float = RESIZE_EMIT_BLOCK_SECONDS,
    ):
        self.min_interval_seconds = min_interval_seconds
        self.block_seconds = block_seconds
        self.pending_stable: TerminalSize | None = None
        self.previous_sent: TerminalSize | None = None
        self.last_sent: TerminalSize | None = None
        self.last_sent_at = 0.0
        self.blocked_pair: tuple[TerminalSize, TerminalSize] | None = None
        self.blocked_until = 0.0

    def should_emit_resize(
        self, cols: int, rows: int, force: bool = False, now: float | None = None
    ) -> bool:
        now = time.time() if now is None else now
        candidate = TerminalSize(cols, rows)

        if not force and candidate != self.pending_stable:
            self.pending_stable = candidate
            return False
        self.pending_stable = None

        if self.blocked_pair is not None and now < self.blocked_until and candidate in self.blocked_pair:
            return False

        if candidate == self.last_sent:
            return False

        if not force and self.last_sent_at > 0 and now - self.last_sent_at < self.min_interval_seconds:
            return False

        if (
            self.previous_sent is not None
            and self.last_sent is not None
            and candidate == self.previous_sent
        ):
            self.blocked_pair = (self.previous_sent, self.last_sent)
            self.blocked_until = now + self.block_seconds
            logger.debug(f"[FlapGuard] emit blocked {self.previous_sent}<->{self.last_sent}")
            return False

        self.previous_sent = self.last_sent
        self.last_sent = candidate
        self.last_sent_at = now
        self.blocked_pair = None
        self.blocked_until = 0.0
        return True
