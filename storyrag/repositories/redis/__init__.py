"""
Redis repositories package.
"""

from .record_repo import RecordRepoRedis

__all__ = ["RecordRepoRedis"]
