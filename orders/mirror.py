import json
import logging
from typing import Dict, List, Optional

import redis
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder


logger = logging.getLogger(__name__)


class LocalMirror:
    """
    Per-terminal key-value copy of the entity collections.

    Each collection is one JSON list stored under
    "<prefix>:<restaurant>:<collection>". The mirror is never synchronised
    with other terminals.
    """

    def __init__(self, restaurant_id=None):
        self.redis_client = redis.Redis(
            host=settings.REDIS_HOST,
            port=int(settings.REDIS_PORT),
            db=int(settings.REDIS_DB),
            decode_responses=True
        )
        self.prefix = getattr(settings, 'CAFEPOS_MIRROR_PREFIX', 'mirror')
        self.scope = str(restaurant_id) if restaurant_id else 'default'

    def key(self, collection: str) -> str:
        return f"{self.prefix}:{self.scope}:{collection}"

    def read(self, collection: str) -> List[Dict]:
        """
        Read a whole collection

        Args:
            collection: Collection name (e.g. "orders")

        Returns:
            List of records, empty if the collection was never written
        """
        raw = self.redis_client.get(self.key(collection))
        if not raw:
            return []
        return json.loads(raw)

    def write(self, collection: str, records: List[Dict]) -> bool:
        """
        Replace a whole collection

        Args:
            collection: Collection name
            records: JSON-serialisable records (Decimal, UUID and datetimes
                are encoded as strings)

        Returns:
            True if stored successfully
        """
        payload = json.dumps(records, cls=DjangoJSONEncoder)
        return bool(self.redis_client.set(self.key(collection), payload))

    def prepend(self, collection: str, record: Dict) -> bool:
        records = self.read(collection)
        records.insert(0, record)
        return self.write(collection, records)

    def find(self, collection: str, record_id) -> Optional[Dict]:
        record_id = str(record_id)
        for record in self.read(collection):
            if str(record.get('id')) == record_id:
                return record
        return None

    def shadow(self, collection: str, records: List[Dict]) -> bool:
        """
        Best-effort copy of freshly read data

        Returns:
            True if stored, False if the mirror could not be reached
        """
        try:
            return self.write(collection, records)
        except redis.RedisError as exc:
            logger.warning("Could not shadow %s to the local mirror: %s", collection, exc)
            return False
