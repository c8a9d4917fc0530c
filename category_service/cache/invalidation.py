"""Invalidation fan-out run after every mutation of an entity family.

A mutation removes:
    - every family-wide view (list pages, stats, gender index,
      with-subcategories index, parent index, validation results), both the
      bare anchor key and every parameterised key under ``anchor:``
    - every slug-keyed detail entry (``<ns>:slug:*``), since the slug of the
      mutated entity may have changed
    - the entity-scoped detail keys ``<ns>:id:<id>`` when an id is given

Deletes run concurrently and are best effort: a failing delete is logged as a
warning and never reaches the caller, whose write has already committed.
"""

import asyncio
import logging
from typing import Iterable, List, Optional, Tuple

from category_service.cache.keys import FamilyKeys, VIEW_SLUG

logger = logging.getLogger(__name__)


class CacheInvalidator:
    """
    Invalidation fan-out for one family namespace.

    Args:
        store: Expiring store with async delete(key) and delete_prefix(prefix)
        keys: FamilyKeys of the family whose views are invalidated
    """

    def __init__(self, store, keys: FamilyKeys):
        self.store = store
        self.keys = keys

    def targets(
        self, entity_id: Optional[str] = None, extra_ids: Iterable[str] = ()
    ) -> List[Tuple[str, str]]:
        """(operation, key) pairs removed by invalidate(entity_id, extra_ids)."""
        sep = self.keys.separator
        ops: List[Tuple[str, str]] = []
        for anchor in self.keys.family_wide_anchors():
            ops.append(("delete", anchor))
            ops.append(("delete_prefix", anchor + sep))

        ops.append(("delete_prefix", self.keys.anchor(VIEW_SLUG) + sep))

        ids = [entity_id] if entity_id else []
        ids.extend(extra_id for extra_id in extra_ids if extra_id and extra_id != entity_id)
        for some_id in ids:
            entity_key = self.keys.entity_key(some_id)
            ops.append(("delete", entity_key))
            ops.append(("delete_prefix", entity_key + sep))
        return ops

    async def invalidate(self, entity_id: Optional[str] = None, extra_ids: Iterable[str] = ()) -> int:
        """
        Remove every cached view affected by a mutation.

        Args:
            entity_id: Id of the mutated entity, if the mutation has one
            extra_ids: Further entity ids touched by a bulk mutation

        Returns:
            Number of removed entries (failed deletes count as zero)
        """
        ops = self.targets(entity_id, extra_ids)
        results = await asyncio.gather(
            *(self._run(op, key) for op, key in ops),
            return_exceptions=True,
        )

        removed = 0
        for (op, key), result in zip(ops, results):
            if isinstance(result, BaseException):
                logger.warning(f"Cache invalidation {op}({key}) failed: {result}")
                continue
            removed += int(result)

        logger.debug(
            f"Invalidated {removed} cache entries for {self.keys.namespace}"
            + (f" (id={entity_id})" if entity_id else "")
        )
        return removed

    async def invalidate_family(self) -> int:
        """
        Remove every cached entry of the family namespace.

        Used when rows of this family were removed by a database cascade, so
        the affected ids are not known to the caller.
        """
        prefix = self.keys.namespace + self.keys.separator
        try:
            removed = await self.store.delete_prefix(prefix)
        except Exception as e:
            logger.warning(f"Cache invalidation delete_prefix({prefix}) failed: {e}")
            return 0
        logger.debug(f"Invalidated {removed} cache entries for {self.keys.namespace} (whole family)")
        return removed

    async def _run(self, op: str, key: str) -> int:
        if op == "delete_prefix":
            return await self.store.delete_prefix(key)
        return int(bool(await self.store.delete(key)))
