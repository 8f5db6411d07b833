"""后台 Worker：每条队列通道一个消费循环。"""

from ._lane_worker import LaneWorker, install_signal_handlers

__all__ = ["LaneWorker", "install_signal_handlers"]
