from . import cache, queue, records, webhooks

__all__ = ["cache", "queue", "records", "webhooks"]
