"""
Tasks
=====

Out-of-band requests an addon asks the client to perform, and the
responder that routes responses between the requests involved.
"""

from .handler import handle_task
from .helpers import (
    TASK_STATUS_CODE,
    create_task_fetch,
    create_task_notification,
    create_task_recaptcha,
    create_task_toast,
    run_task,
    task_cache,
)
from .responder import Responder, forward_to_task

__all__ = [
    "TASK_STATUS_CODE",
    "Responder",
    "create_task_fetch",
    "create_task_notification",
    "create_task_recaptcha",
    "create_task_toast",
    "forward_to_task",
    "handle_task",
    "run_task",
    "task_cache",
]
