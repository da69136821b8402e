"""Durable storage for the translation cache blob.

The whole cache is persisted as one JSON document under a fixed key:
    {contentHash: {languageCode: translatedText}}

Several workers can share one store, so writes go through update(merge):
the store hands merge() the blob currently stored and saves what it
returns. Parsing and merging live in TranslationCache; stores only move the
serialized blob around.
"""
import os
import logging
import tempfile

logger = logging.getLogger(__name__)

CACHE_STORAGE_KEY = 'reliefnet_translation_cache'


class MemoryStore:
    """Process-local store. Used in tests and when nothing durable is configured."""

    def __init__(self, blob=None):
        self.blob = blob
        self.writes = 0

    def read(self):
        return self.blob

    def write(self, blob):
        self.blob = blob
        self.writes += 1

    def update(self, merge):
        self.write(merge(self.read()))


class JsonFileStore:
    """Blob kept in a local JSON file, replaced atomically on every write.

    Meant for a single process; use RedisStore when workers share the cache.
    """

    def __init__(self, path):
        self.path = path

    def read(self):
        try:
            with open(self.path, encoding='utf-8') as f:
                return f.read()
        except FileNotFoundError:
            return None

    def write(self, blob):
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.translation_cache.', suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(blob)
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def update(self, merge):
        self.write(merge(self.read()))


class RedisStore:
    """Blob shared by every worker through Redis.

    update() runs read-merge-write under WATCH, so a write from another
    worker in between makes redis-py retry the merge instead of losing it.
    """

    def __init__(self, client, key=CACHE_STORAGE_KEY):
        self.client = client
        self.key = key

    def read(self):
        return self.client.get(self.key)

    def write(self, blob):
        self.client.set(self.key, blob)

    def update(self, merge):
        def apply(pipe):
            merged = merge(pipe.get(self.key))
            pipe.multi()
            pipe.set(self.key, merged)

        self.client.transaction(apply, self.key)


def build_store(config):
    """Pick a store from the TRANSLATION_STORE setting (file, redis or memory)."""
    kind = (config.get('TRANSLATION_STORE') or 'file').lower()

    if kind == 'redis':
        from reliefnet.services.redis_client import get_redis
        client = get_redis()
        if client is not None:
            return RedisStore(client)
        logger.warning("Redis unavailable - translation cache will not survive restarts")
        return MemoryStore()

    if kind == 'file':
        return JsonFileStore(config.get('TRANSLATION_CACHE_PATH') or 'translation_cache.json')

    if kind != 'memory':
        logger.warning(f"Unknown TRANSLATION_STORE '{kind}', using memory")
    return MemoryStore()
