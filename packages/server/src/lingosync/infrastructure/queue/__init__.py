from ._dispatcher import JobDispatcher, JobHandler
from ._inline import InlineJobQueue
from .factory import create_inline_queue, create_job_queue

__all__ = [
    "InlineJobQueue",
    "JobDispatcher",
    "JobHandler",
    "create_inline_queue",
    "create_job_queue",
]
