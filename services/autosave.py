"""
防抖自动保存 (Autosave Scheduler)
每个场景各自持有一个可取消的延时任务：同一场景的新内容会取消并重排旧任务，
不同场景的任务互不影响。
"""
from __future__ import annotations
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

SaveFunc = Callable[[str, str, str], None]


@dataclass
class PendingSave:
    project_id: str
    scene_id: str
    content: str
    seq: int
    timer: object = None


class AutosaveScheduler:
    def __init__(self, save_func: SaveFunc, delay: float = 1.5, timer_factory=threading.Timer, run_lock=None):
        """
        Args:
            save_func: 到期时调用 save_func(project_id, scene_id, content)。
            delay: 静默多少秒后写入。
            timer_factory: 与 threading.Timer 同签名的工厂，测试中可替换。
            run_lock: 执行写入时持有的锁，通常传入上下文的锁。
        """
        self.save_func = save_func
        self.delay = delay
        self.timer_factory = timer_factory
        self._pending: Dict[str, PendingSave] = {}
        self._lock = threading.Lock()
        self._run_lock = run_lock or threading.RLock()
        self._sequence = 0
        self._last_written: Dict[str, int] = {}
        self._cancelled_upto: Dict[str, int] = {}

    def schedule(self, project_id: str, scene_id: str, content: str):
        with self._lock:
            previous = self._pending.pop(scene_id, None)
            if previous:
                previous.timer.cancel()
            self._sequence += 1
            pending = PendingSave(project_id, scene_id, content, self._sequence)
            pending.timer = self.timer_factory(self.delay, self._fire, args=(pending,))
            if hasattr(pending.timer, "daemon"):
                pending.timer.daemon = True
            self._pending[scene_id] = pending
            pending.timer.start()

    def cancel(self, scene_id: str) -> bool:
        """丢弃某个场景尚未写入的内容"""
        with self._lock:
            pending = self._pending.pop(scene_id, None)
            # 已经离开队列、正在途中的旧任务也一并作废
            self._cancelled_upto[scene_id] = self._sequence
        if pending is None:
            return False
        pending.timer.cancel()
        logger.debug(f"已取消场景 {scene_id} 的自动保存。")
        return True

    def flush(self, scene_id: Optional[str] = None):
        """立即执行待写入任务（全部或指定场景），不丢失任何内容"""
        with self._lock:
            if scene_id is None:
                targets = list(self._pending.values())
                self._pending.clear()
            else:
                target = self._pending.pop(scene_id, None)
                targets = [target] if target else []
        for pending in targets:
            pending.timer.cancel()
            self._run(pending)

    def has_pending(self, scene_id: Optional[str] = None) -> bool:
        with self._lock:
            if scene_id is None:
                return bool(self._pending)
            return scene_id in self._pending

    def forget(self, scene_id: Optional[str] = None):
        """清除场景（默认全部）的写入顺序记录。场景删除或离开项目后调用"""
        with self._run_lock, self._lock:
            if scene_id is None:
                self._last_written.clear()
                self._cancelled_upto.clear()
            else:
                self._last_written.pop(scene_id, None)
                self._cancelled_upto.pop(scene_id, None)

    def shutdown(self):
        self.flush()
        self.forget()

    def _fire(self, pending: PendingSave):
        with self._lock:
            # 已被 flush、cancel 或被更新的任务取代
            if self._pending.get(pending.scene_id) is not pending:
                return
            del self._pending[pending.scene_id]
        self._run(pending)

    def _run(self, pending: PendingSave):
        with self._run_lock:
            # 同一场景的写入必须按发出顺序生效
            if (pending.seq < self._last_written.get(pending.scene_id, 0)
                    or pending.seq <= self._cancelled_upto.get(pending.scene_id, 0)):
                logger.info(f"跳过过期的自动保存: 场景 {pending.scene_id}")
                return
            self._last_written[pending.scene_id] = pending.seq
            self.save_func(pending.project_id, pending.scene_id, pending.content)
