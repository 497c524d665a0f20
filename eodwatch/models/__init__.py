from eodwatch.models.bar import Bar, Timeframe
from eodwatch.models.cache_record import CacheMeta, CacheRecord, RATE_LIMITED_STATUS

__all__ = ["Bar", "Timeframe", "CacheMeta", "CacheRecord", "RATE_LIMITED_STATUS"]
