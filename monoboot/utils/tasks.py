"""任务组 — 并发执行一组无返回值任务（join-all + fail-fast）

语义:
  - 全部任务提交到线程池并发执行，彼此之间不保证顺序
  - 任一任务失败，gather() 在所有已启动任务结束后抛出第一个观察到的异常
  - 失败后排队中的任务不再启动，正在执行的任务不强制取消
"""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Callable, Iterable

logger = logging.getLogger(__name__)

# 单个任务组的线程上限，仅防止文件很多时线程数失控；任务本身无序，不影响语义
FANOUT_LIMIT = 32

Task = Callable[[], None]


def gather(tasks: Iterable[Task], *, name: str = "tasks") -> None:
    """并发执行 tasks，全部完成后返回；有失败时抛出第一个失败的异常"""
    task_list = list(tasks)
    if not task_list:
        return
    if len(task_list) == 1:
        task_list[0]()
        return

    workers = min(len(task_list), FANOUT_LIMIT)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=name) as pool:
        futures = [pool.submit(t) for t in task_list]
        done, _ = wait(futures, return_when=FIRST_EXCEPTION)
        first_error = next(
            (f.exception() for f in done if f.exception() is not None), None,
        )
        if first_error is not None:
            # 只撤销尚未开始的任务，已在执行的任务跑完为止
            for f in futures:
                f.cancel()
    # with 块退出时已等待剩余任务结束
    if first_error is not None:
        raise first_error
