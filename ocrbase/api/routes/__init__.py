from . import jobs, realtime, worker

__all__ = ["jobs", "realtime", "worker"]
