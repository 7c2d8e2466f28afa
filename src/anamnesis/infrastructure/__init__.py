# Infrastructure Adapters Package
from .json_store import JsonCardRepository, JsonReviewLogRepository

__all__ = ["JsonCardRepository", "JsonReviewLogRepository"]
