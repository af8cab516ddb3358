from .http import BatchSender, batch_url, map_batch_response

__all__ = [
    "BatchSender",
    "batch_url",
    "map_batch_response",
]
