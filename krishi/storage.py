import copy
import json
import logging
import threading

from redis.asyncio import Redis
from redis.asyncio.cluster import RedisCluster

from krishi.config import Config

logger = logging.getLogger("storage")

StorageKey = {
    "ACTIVITIES": "krishi_activities",
    "TRANSACTIONS": "krishi_transactions",
    "WEATHER_CACHE": "krishi_weather_cache",
    "LOCATION_CACHE": "krishi_location_cache",
}


class RedisStorage:
    """
    Key/value + append-only log store on Redis.

    Single values are stored as JSON strings; logs are Redis lists written
    with LPUSH so the newest record is first and each append is atomic.
    """

    def __init__(self, client=None, namespace="krishi"):
        self._client = client or self._connect()
        self._namespace = namespace

    @staticmethod
    def _connect():
        if Config.use_local_redis:
            logger.info("[REDIS] Using LOCAL single-node Redis")
            return Redis(
                host=Config.redis_host,
                port=Config.redis_port,
                password=Config.redis_password or None,
                ssl=Config.redis_ssl,
                decode_responses=True,
            )

        logger.info("[REDIS] Using CLUSTER Redis (Azure Managed)")
        return RedisCluster(
            host=Config.redis_host,
            port=Config.redis_port,
            password=Config.redis_password or None,
            ssl=Config.redis_ssl,
            decode_responses=True,
        )

    def _key(self, key):
        return f"{self._namespace}:{key}"

    async def get(self, key):
        data = await self._client.get(self._key(key))
        return json.loads(data) if data else None

    async def put(self, key, value):
        await self._client.set(self._key(key), json.dumps(value, ensure_ascii=False))

    async def append(self, key, record):
        await self._client.lpush(self._key(key), json.dumps(record, ensure_ascii=False))

    async def list_all(self, key):
        items = await self._client.lrange(self._key(key), 0, -1)
        records = []
        for item in items:
            try:
                records.append(json.loads(item))
            except json.JSONDecodeError as e:
                logger.warning("[REDIS] Skipping corrupt entry in %s: %s", key, e)
        return records

    async def close(self):
        await self._client.aclose()


class MemoryStorage:
    """In-process store with the same contract as RedisStorage."""

    def __init__(self):
        self._values = {}
        self._logs = {}
        self._lock = threading.Lock()

    async def get(self, key):
        with self._lock:
            return copy.deepcopy(self._values.get(key))

    async def put(self, key, value):
        with self._lock:
            self._values[key] = copy.deepcopy(value)

    async def append(self, key, record):
        with self._lock:
            # readers holding the old list never see a half-written one
            self._logs[key] = [copy.deepcopy(record)] + self._logs.get(key, [])

    async def list_all(self, key):
        with self._lock:
            return copy.deepcopy(self._logs.get(key, []))

    async def close(self):
        return None


def create_storage():
    if Config.storage_backend == "memory":
        logger.info("[STORAGE] Using in-memory storage")
        return MemoryStorage()
    return RedisStorage()
