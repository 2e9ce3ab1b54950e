"""소유자가 시작/중지하는 주기 작업.

전역 타이머 대신, 이 객체를 가진 쪽(앱 lifespan 등)이 start() 로 시작하고
종료 시 stop() 으로 취소합니다. 콜백에서 예외가 나도 로그만 남기고 다음 주기에 다시 실행합니다.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    def __init__(self, interval: float, callback: Callable[[], Any], name: str = "periodic-task"):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.callback = callback
        self.name = name
        self.ticks = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """실행 중인 이벤트 루프 안에서 호출해야 함"""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        logger.info(f"[{self.name}] 주기 작업 시작 ({self.interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info(f"[{self.name}] 주기 작업 중지")

    async def tick(self) -> None:
        """콜백 1회 실행. 동기 콜백은 워커 스레드에서 실행"""
        try:
            if inspect.iscoroutinefunction(self.callback):
                await self.callback()
            else:
                await asyncio.to_thread(self.callback)
        except Exception:
            logger.exception(f"[{self.name}] 주기 작업 실패")
        finally:
            self.ticks += 1

    async def _run(self) -> None:
        while True:
            await self.tick()
            await asyncio.sleep(self.interval)
