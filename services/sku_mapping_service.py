"""
SKU mapping service.

Owns standard SKU mappings and their customer variations. Every
detection, import and export goes through this service.

PostgREST has no client-side transactions, so multi-statement writes
snapshot the variation rows first and restore them if a later statement
fails. Batches of variation rows are always written in one statement.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional
import structlog

from config import get_supabase_client, settings
from models.sku_mapping import (
    SkuMappingCreate,
    SkuMappingUpdate,
    SkuMappingResponse,
    SkuVariationChange,
    SkuVariationCreate,
    SkuVariationResponse,
    StandardSkuMatch,
    VariationAction,
)
from services.customer_service import CustomerService, get_customer_service
from exceptions import (
    AppError,
    DatabaseError,
    DuplicateVariationError,
    InvalidVariationChangeError,
    SkuMappingExistsError,
    SkuMappingNotFoundError,
    SkuVariationNotFoundError,
    UnknownCustomerError,
)

logger = structlog.get_logger(__name__)

# PostgREST caps responses at 1000 rows
FETCH_CHUNK = 1000
# Keep IN (...) lists short enough for the query string
ID_CHUNK = 200

VARIATION_CONFLICT_KEY = "mapping_id,customer_id,variation_sku"


@dataclass
class VariationPlan:
    """Variation writes for one update, validated before anything is written."""
    replace_all: bool = False
    inserts: list[dict] = field(default_factory=list)
    updates: list[tuple[int, dict]] = field(default_factory=list)
    deletes: list[int] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.replace_all or self.inserts or self.updates or self.deletes)

    @property
    def customer_ids(self) -> set[int]:
        ids = {row["customer_id"] for row in self.inserts}
        ids.update(patch["customer_id"] for _, patch in self.updates if "customer_id" in patch)
        return ids


@dataclass
class ImportGroupOutcome:
    """What upsert_group did to one standard SKU."""
    mapping_id: int
    created: bool
    updated: bool
    variations_written: int


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_unique_violation(error: Exception) -> bool:
    text = str(error).lower()
    return "23505" in text or "duplicate key" in text


def _clean_search(term: str) -> str:
    # Characters with meaning inside a PostgREST or=() filter or a LIKE pattern
    for char in ',()"*%_\\':
        term = term.replace(char, " ")
    return term.strip()


def _chunks(values: list, size: int) -> Iterable[list]:
    for start in range(0, len(values), size):
        yield values[start:start + size]


class SkuMappingService:
    """
    SKU mapping business logic.

    Handles CRUD for sku_mappings and the nested sku_variations.
    """

    def __init__(self, customer_service: Optional[CustomerService] = None):
        self.db = get_supabase_client()
        self.mappings_table = "sku_mappings"
        self.variations_table = "sku_variations"
        self.customers = customer_service or get_customer_service()

    # ===================
    # INTERNAL HELPERS
    # ===================

    def _select_all(
        self,
        table: str,
        apply: Optional[Callable] = None,
        order: tuple[str, ...] = ("id",)
    ) -> list[dict]:
        """Select every matching row, paging past the PostgREST row cap."""
        rows: list[dict] = []
        start = 0
        while True:
            query = self.db.table(table).select("*")
            if apply:
                query = apply(query)
            for column in order:
                query = query.order(column)
            batch = query.range(start, start + FETCH_CHUNK - 1).execute().data or []
            rows.extend(batch)
            if len(batch) < FETCH_CHUNK:
                return rows
            start += FETCH_CHUNK

    def _fetch_variations(self, mapping_ids: Optional[list[int]] = None) -> dict[int, list[dict]]:
        """
        Fetch variation rows grouped by mapping_id, ordered by id.

        Args:
            mapping_ids: Mappings to load; None loads every variation
        """
        if mapping_ids is None:
            rows = self._select_all(self.variations_table, order=("mapping_id", "id"))
        else:
            rows = []
            for chunk in _chunks(sorted(set(mapping_ids)), ID_CHUNK):
                rows.extend(self._select_all(
                    self.variations_table,
                    apply=lambda q, ids=chunk: q.in_("mapping_id", ids),
                    order=("mapping_id", "id")
                ))

        grouped: dict[int, list[dict]] = {}
        for row in rows:
            grouped.setdefault(row["mapping_id"], []).append(row)
        return grouped

    @staticmethod
    def _to_response(mapping: dict, variations: list[dict]) -> SkuMappingResponse:
        return SkuMappingResponse(
            **mapping,
            variations=[SkuVariationResponse(**v) for v in variations]
        )

    def _get_row(self, mapping_id: int) -> Optional[dict]:
        result = (
            self.db.table(self.mappings_table)
            .select("*")
            .eq("id", mapping_id)
            .limit(1)
            .execute()
        )
        return result.data[0] if result.data else None

    def _get_row_by_standard_sku(self, standard_sku: str) -> Optional[dict]:
        result = (
            self.db.table(self.mappings_table)
            .select("*")
            .eq("standard_sku", standard_sku)
            .limit(1)
            .execute()
        )
        return result.data[0] if result.data else None

    def _require_customers(self, customer_ids: Iterable[int]) -> None:
        """Raise UnknownCustomerError unless every customer exists."""
        ids = set(customer_ids)
        if not ids:
            return
        missing = ids - self.customers.existing_ids(ids)
        if missing:
            raise UnknownCustomerError(list(missing))

    @staticmethod
    def _check_unique_variations(
        mapping_id: Optional[int],
        keys: Iterable[tuple[int, str]]
    ) -> None:
        """Raise DuplicateVariationError if a (customer, sku) pair repeats."""
        seen: set[tuple[int, str]] = set()
        for customer_id, variation_sku in keys:
            key = (customer_id, variation_sku)
            if key in seen:
                raise DuplicateVariationError(mapping_id, customer_id, variation_sku)
            seen.add(key)

    def _touch(self, mapping_id: int) -> None:
        """Refresh updated_at on a mapping."""
        self.db.table(self.mappings_table).update(
            {"updated_at": _now()}
        ).eq("id", mapping_id).execute()

    def _rollback_mapping_insert(self, mapping_id: int) -> None:
        """Best-effort removal of a mapping created earlier in the same call."""
        try:
            self.db.table(self.variations_table).delete().eq("mapping_id", mapping_id).execute()
            self.db.table(self.mappings_table).delete().eq("id", mapping_id).execute()
            logger.info("sku_mapping_insert_rolled_back", mapping_id=mapping_id)
        except Exception as rollback_err:
            logger.error(
                "sku_mapping_rollback_failed",
                mapping_id=mapping_id,
                error=str(rollback_err)
            )

    def _restore_variations(self, mapping_id: int, snapshot: list[dict]) -> None:
        """Best-effort: put a mapping's variation set back to a snapshot."""
        try:
            self.db.table(self.variations_table).delete().eq("mapping_id", mapping_id).execute()
            if snapshot:
                self.db.table(self.variations_table).insert(snapshot).execute()
            logger.info(
                "sku_variations_restored",
                mapping_id=mapping_id,
                count=len(snapshot)
            )
        except Exception as rollback_err:
            logger.error(
                "sku_variations_rollback_failed",
                mapping_id=mapping_id,
                error=str(rollback_err)
            )

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(self, search: Optional[str] = None) -> list[SkuMappingResponse]:
        """
        Get all mappings with their variations, in creation order.

        Args:
            search: Case-insensitive match on standard SKU or description

        Returns:
            List of SkuMappingResponse
        """
        logger.info("getting_sku_mappings", search=search)

        term = _clean_search(search) if search else ""

        try:
            if term:
                mappings = self._select_all(
                    self.mappings_table,
                    apply=lambda q: q.or_(
                        f"standard_sku.ilike.*{term}*,standard_description.ilike.*{term}*"
                    )
                )
                variations = self._fetch_variations([m["id"] for m in mappings])
            else:
                mappings = self._select_all(self.mappings_table)
                variations = self._fetch_variations()

            result = [self._to_response(m, variations.get(m["id"], [])) for m in mappings]

            logger.info("sku_mappings_retrieved", count=len(result))
            return result

        except Exception as e:
            logger.error("get_sku_mappings_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_page(
        self,
        page: int = 1,
        page_size: Optional[int] = None,
        search: Optional[str] = None
    ) -> tuple[list[SkuMappingResponse], int]:
        """
        Get one page of mappings.

        Args:
            page: Page number (1-indexed)
            page_size: Items per page, clamped to 1..mapping_max_page_size
            search: Case-insensitive match on standard SKU or description

        Returns:
            Tuple of (mappings list, total count)
        """
        page = max(page, 1)
        page_size = page_size or settings.mapping_page_size
        page_size = min(max(page_size, 1), settings.mapping_max_page_size)

        logger.info("getting_sku_mapping_page", page=page, page_size=page_size, search=search)

        term = _clean_search(search) if search else ""

        try:
            query = self.db.table(self.mappings_table).select("*", count="exact")
            if term:
                query = query.or_(
                    f"standard_sku.ilike.*{term}*,standard_description.ilike.*{term}*"
                )

            offset = (page - 1) * page_size
            result = query.order("id").range(offset, offset + page_size - 1).execute()

            mappings = result.data or []
            variations = self._fetch_variations([m["id"] for m in mappings]) if mappings else {}
            data = [self._to_response(m, variations.get(m["id"], [])) for m in mappings]
            total = result.count or 0

            logger.info("sku_mapping_page_retrieved", count=len(data), total=total)
            return data, total

        except Exception as e:
            logger.error("get_sku_mapping_page_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_by_id(self, mapping_id: int) -> SkuMappingResponse:
        """
        Get a single mapping with its variations.

        Raises:
            SkuMappingNotFoundError: If mapping doesn't exist
        """
        logger.debug("getting_sku_mapping", mapping_id=mapping_id)

        try:
            row = self._get_row(mapping_id)
            if row is None:
                raise SkuMappingNotFoundError(mapping_id)

            variations = self._fetch_variations([mapping_id])
            return self._to_response(row, variations.get(mapping_id, []))

        except SkuMappingNotFoundError:
            raise
        except Exception as e:
            logger.error("get_sku_mapping_failed", mapping_id=mapping_id, error=str(e))
            raise DatabaseError("select", str(e))

    def get_by_standard_sku(self, standard_sku: str) -> Optional[SkuMappingResponse]:
        """Get a mapping by its standard SKU, or None."""
        logger.debug("getting_sku_mapping_by_standard_sku", standard_sku=standard_sku)

        try:
            row = self._get_row_by_standard_sku(standard_sku)
            if row is None:
                return None
            variations = self._fetch_variations([row["id"]])
            return self._to_response(row, variations.get(row["id"], []))

        except Exception as e:
            logger.error(
                "get_sku_mapping_by_standard_sku_failed",
                standard_sku=standard_sku,
                error=str(e)
            )
            raise DatabaseError("select", str(e))

    def find_standard_sku_for(self, variation_sku: str) -> Optional[StandardSkuMatch]:
        """
        Exact lookup of the standard SKU a spelling belongs to.

        Case-sensitive. If several mappings know the spelling, the oldest
        mapping wins.

        Returns:
            StandardSkuMatch or None if no variation matches
        """
        logger.debug("finding_standard_sku", variation_sku=variation_sku)

        try:
            result = (
                self.db.table(self.variations_table)
                .select("mapping_id")
                .eq("variation_sku", variation_sku)
                .order("mapping_id")
                .order("id")
                .limit(1)
                .execute()
            )
            if not result.data:
                return None

            row = self._get_row(result.data[0]["mapping_id"])
            if row is None:
                return None

            return StandardSkuMatch(
                standard_sku=row["standard_sku"],
                standard_description=row["standard_description"]
            )

        except Exception as e:
            logger.error("find_standard_sku_failed", variation_sku=variation_sku, error=str(e))
            raise DatabaseError("select", str(e))

    def get_variation(self, variation_id: int) -> SkuVariationResponse:
        """
        Get a single variation.

        Raises:
            SkuVariationNotFoundError: If variation doesn't exist
        """
        try:
            result = (
                self.db.table(self.variations_table)
                .select("*")
                .eq("id", variation_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("get_sku_variation_failed", variation_id=variation_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise SkuVariationNotFoundError(variation_id)
        return SkuVariationResponse(**result.data[0])

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create(self, data: SkuMappingCreate) -> SkuMappingResponse:
        """
        Create a mapping together with its variations.

        The mapping row is removed again if the variations cannot be saved.

        Raises:
            SkuMappingExistsError: If standard SKU already exists
            DuplicateVariationError: If a (customer, variation SKU) pair repeats
            UnknownCustomerError: If a variation names an unknown customer
        """
        logger.info(
            "creating_sku_mapping",
            standard_sku=data.standard_sku,
            variations=len(data.variations)
        )

        if self._get_row_by_standard_sku(data.standard_sku):
            raise SkuMappingExistsError(data.standard_sku)

        self._check_unique_variations(
            None, [(v.customer_id, v.variation_sku) for v in data.variations]
        )
        self._require_customers(v.customer_id for v in data.variations)

        try:
            result = (
                self.db.table(self.mappings_table)
                .insert({
                    "standard_sku": data.standard_sku,
                    "standard_description": data.standard_description,
                })
                .execute()
            )
        except Exception as e:
            if _is_unique_violation(e):
                raise SkuMappingExistsError(data.standard_sku)
            logger.error("create_sku_mapping_failed", standard_sku=data.standard_sku, error=str(e))
            raise DatabaseError("insert", str(e))

        mapping = result.data[0]
        mapping_id = mapping["id"]

        rows = [
            {
                "mapping_id": mapping_id,
                "customer_id": v.customer_id,
                "variation_sku": v.variation_sku,
                "source": v.source,
            }
            for v in data.variations
        ]
        try:
            inserted = self.db.table(self.variations_table).insert(rows).execute()
        except Exception as e:
            logger.error(
                "sku_variations_insert_failed",
                mapping_id=mapping_id,
                error=str(e)
            )
            self._rollback_mapping_insert(mapping_id)
            raise DatabaseError("insert", f"Failed to save variations: {e}")

        logger.info(
            "sku_mapping_created",
            mapping_id=mapping_id,
            standard_sku=data.standard_sku,
            variations=len(inserted.data)
        )
        return self._to_response(mapping, sorted(inserted.data, key=lambda v: v["id"]))

    def _plan_variation_changes(
        self,
        existing: SkuMappingResponse,
        changes: list[SkuVariationChange],
        replacement_mode: bool
    ) -> VariationPlan:
        """
        Turn an update's variation entries into writes.

        Raises before anything is written if an entry is incomplete, names
        a variation of another mapping, or would duplicate a spelling.
        """
        plan = VariationPlan(replace_all=replacement_mode)
        current = {v.id: v for v in existing.variations}

        def insert_row(change: SkuVariationChange, index: int) -> dict:
            if not (change.variation_sku and change.source and change.customer_id):
                raise InvalidVariationChangeError(
                    "New variations need variation_sku, source and customer_id", index
                )
            return {
                "mapping_id": existing.id,
                "customer_id": change.customer_id,
                "variation_sku": change.variation_sku,
                "source": change.source,
            }

        if replacement_mode:
            plan.inserts = [insert_row(change, i) for i, change in enumerate(changes)]
            self._check_unique_variations(
                existing.id, [(r["customer_id"], r["variation_sku"]) for r in plan.inserts]
            )
            return plan

        touched: set[int] = set()
        for index, change in enumerate(changes):
            if change.action == VariationAction.NEW:
                plan.inserts.append(insert_row(change, index))
                continue

            if change.id is None:
                raise InvalidVariationChangeError(
                    "Existing variations must be addressed by id", index
                )
            if change.id not in current:
                raise SkuVariationNotFoundError(change.id)
            if change.id in touched:
                raise InvalidVariationChangeError(
                    "Variation listed more than once", index
                )
            touched.add(change.id)

            if change.action == VariationAction.DELETE:
                plan.deletes.append(change.id)
                continue

            patch = {
                key: value
                for key, value in (
                    ("variation_sku", change.variation_sku),
                    ("source", change.source),
                    ("customer_id", change.customer_id),
                )
                if value is not None
            }
            if patch:
                plan.updates.append((change.id, patch))

        # Spellings the mapping will hold once the plan is applied
        final: dict[int, tuple[int, str]] = {
            vid: (v.customer_id, v.variation_sku)
            for vid, v in current.items()
            if vid not in plan.deletes
        }
        for vid, patch in plan.updates:
            customer_id, variation_sku = final[vid]
            final[vid] = (
                patch.get("customer_id", customer_id),
                patch.get("variation_sku", variation_sku),
            )
        keys = list(final.values()) + [(r["customer_id"], r["variation_sku"]) for r in plan.inserts]
        self._check_unique_variations(existing.id, keys)

        return plan

    def _apply_variation_plan(self, existing: SkuMappingResponse, plan: VariationPlan) -> None:
        table = self.variations_table
        now = _now()
        current = {v.id: v for v in existing.variations}

        # Patched rows are deleted and re-inserted under their own ids, so two
        # rows may trade spellings without a transient unique-key collision
        rewritten = [
            {**current[variation_id].model_dump(mode="json"), **patch, "updated_at": now}
            for variation_id, patch in plan.updates
        ]

        if plan.replace_all:
            self.db.table(table).delete().eq("mapping_id", existing.id).execute()
        else:
            removed = plan.deletes + [variation_id for variation_id, _ in plan.updates]
            if removed:
                self.db.table(table).delete().in_("id", removed).execute()

        if rewritten:
            self.db.table(table).insert(rewritten).execute()

        if plan.inserts:
            self.db.table(table).insert(plan.inserts).execute()

    def update(self, mapping_id: int, data: SkuMappingUpdate) -> SkuMappingResponse:
        """
        Update a mapping and, optionally, its variations.

        With replacement_mode the supplied variations become the whole set.
        Otherwise entries are patched, inserted (action="new") or removed
        (action="delete") one by one. If any write fails the previous
        variation set is restored.

        Raises:
            SkuMappingNotFoundError: If mapping doesn't exist
            SkuMappingExistsError: If new standard SKU already exists
            SkuVariationNotFoundError: If an entry names a foreign variation
            InvalidVariationChangeError: If an entry is incomplete
            DuplicateVariationError: If a spelling would repeat
        """
        logger.info(
            "updating_sku_mapping",
            mapping_id=mapping_id,
            replacement_mode=data.replacement_mode
        )

        existing = self.get_by_id(mapping_id)

        patch: dict = {}
        if data.standard_sku is not None and data.standard_sku != existing.standard_sku:
            if self._get_row_by_standard_sku(data.standard_sku):
                raise SkuMappingExistsError(data.standard_sku)
            patch["standard_sku"] = data.standard_sku
        if (
            data.standard_description is not None
            and data.standard_description != existing.standard_description
        ):
            patch["standard_description"] = data.standard_description

        plan = None
        if data.variations is not None:
            plan = self._plan_variation_changes(existing, data.variations, data.replacement_mode)
            self._require_customers(plan.customer_ids)

        if not patch and (plan is None or plan.is_empty):
            # Nothing to update, return existing
            return existing

        snapshot = [v.model_dump(mode="json") for v in existing.variations]

        try:
            if plan is not None and not plan.is_empty:
                self._apply_variation_plan(existing, plan)

            self.db.table(self.mappings_table).update(
                {**patch, "updated_at": _now()}
            ).eq("id", mapping_id).execute()

        except Exception as e:
            logger.error("update_sku_mapping_failed", mapping_id=mapping_id, error=str(e))
            if plan is not None and not plan.is_empty:
                self._restore_variations(mapping_id, snapshot)
            if _is_unique_violation(e) and "standard_sku" in patch:
                raise SkuMappingExistsError(patch["standard_sku"])
            raise DatabaseError("update", str(e))

        logger.info(
            "sku_mapping_updated",
            mapping_id=mapping_id,
            fields=list(patch.keys()),
            replaced=bool(plan and plan.replace_all),
            inserted=len(plan.inserts) if plan else 0,
            updated=len(plan.updates) if plan else 0,
            deleted=len(plan.deletes) if plan else 0
        )

        return self.get_by_id(mapping_id)

    def delete(self, mapping_id: int) -> bool:
        """
        Delete a mapping and all of its variations.

        Returns:
            True if deleted

        Raises:
            SkuMappingNotFoundError: If mapping doesn't exist
        """
        logger.info("deleting_sku_mapping", mapping_id=mapping_id)

        existing = self.get_by_id(mapping_id)
        snapshot = [v.model_dump(mode="json") for v in existing.variations]

        try:
            self.db.table(self.variations_table).delete().eq("mapping_id", mapping_id).execute()
        except Exception as e:
            logger.error("delete_sku_variations_failed", mapping_id=mapping_id, error=str(e))
            raise DatabaseError("delete", str(e))

        try:
            self.db.table(self.mappings_table).delete().eq("id", mapping_id).execute()
        except Exception as e:
            logger.error("delete_sku_mapping_failed", mapping_id=mapping_id, error=str(e))
            self._restore_variations(mapping_id, snapshot)
            raise DatabaseError("delete", str(e))

        logger.info(
            "sku_mapping_deleted",
            mapping_id=mapping_id,
            variations=len(snapshot)
        )
        return True

    def add_variation(self, mapping_id: int, data: SkuVariationCreate) -> SkuVariationResponse:
        """
        Add one variation to an existing mapping.

        Raises:
            SkuMappingNotFoundError: If mapping doesn't exist
            DuplicateVariationError: If the spelling is already registered
            UnknownCustomerError: If the customer doesn't exist
        """
        logger.info(
            "adding_sku_variation",
            mapping_id=mapping_id,
            variation_sku=data.variation_sku,
            customer_id=data.customer_id
        )

        mapping = self.get_by_id(mapping_id)
        self._check_unique_variations(
            mapping_id,
            [(v.customer_id, v.variation_sku) for v in mapping.variations]
            + [(data.customer_id, data.variation_sku)]
        )
        self._require_customers([data.customer_id])

        try:
            result = (
                self.db.table(self.variations_table)
                .insert({
                    "mapping_id": mapping_id,
                    "customer_id": data.customer_id,
                    "variation_sku": data.variation_sku,
                    "source": data.source,
                })
                .execute()
            )
        except Exception as e:
            if _is_unique_violation(e):
                raise DuplicateVariationError(mapping_id, data.customer_id, data.variation_sku)
            logger.error("add_sku_variation_failed", mapping_id=mapping_id, error=str(e))
            raise DatabaseError("insert", str(e))

        variation = SkuVariationResponse(**result.data[0])

        try:
            self._touch(mapping_id)
        except Exception as e:
            logger.error("touch_sku_mapping_failed", mapping_id=mapping_id, error=str(e))
            self._restore_variations(
                mapping_id, [v.model_dump(mode="json") for v in mapping.variations]
            )
            raise DatabaseError("update", str(e))

        logger.info("sku_variation_added", mapping_id=mapping_id, variation_id=variation.id)
        return variation

    def delete_variation(self, variation_id: int) -> bool:
        """
        Delete one variation.

        Raises:
            SkuVariationNotFoundError: If variation doesn't exist
        """
        logger.info("deleting_sku_variation", variation_id=variation_id)

        variation = self.get_variation(variation_id)

        try:
            self.db.table(self.variations_table).delete().eq("id", variation_id).execute()
        except Exception as e:
            logger.error("delete_sku_variation_failed", variation_id=variation_id, error=str(e))
            raise DatabaseError("delete", str(e))

        try:
            self._touch(variation.mapping_id)
        except Exception as e:
            logger.error(
                "touch_sku_mapping_failed",
                mapping_id=variation.mapping_id,
                error=str(e)
            )
            try:
                self.db.table(self.variations_table).insert(
                    variation.model_dump(mode="json")
                ).execute()
            except Exception:
                logger.error("sku_variation_rollback_failed", variation_id=variation_id)
            raise DatabaseError("update", str(e))

        logger.info(
            "sku_variation_deleted",
            variation_id=variation_id,
            mapping_id=variation.mapping_id
        )
        return True

    # ===================
    # BULK OPERATIONS
    # ===================

    def upsert_group(
        self,
        standard_sku: str,
        standard_description: str,
        variations: list[SkuVariationCreate]
    ) -> ImportGroupOutcome:
        """
        Create or refresh one standard SKU and its variations (import path).

        - Existing mapping: description patched only if it differs.
        - New mapping: inserted, removed again if variations fail.
        - Variations upserted on (mapping_id, customer_id, variation_sku);
          rows whose source is unchanged are not written.

        Args:
            standard_sku: Standard SKU of the group
            standard_description: Description from the file (may be empty)
            variations: Variations whose customers are known to exist

        Returns:
            ImportGroupOutcome

        Raises:
            DatabaseError: If the group could not be written
        """
        logger.debug("upserting_sku_mapping_group", standard_sku=standard_sku)

        try:
            existing = self._get_row_by_standard_sku(standard_sku)
        except Exception as e:
            raise DatabaseError("select", str(e))

        created = existing is None
        if created:
            try:
                result = (
                    self.db.table(self.mappings_table)
                    .insert({
                        "standard_sku": standard_sku,
                        "standard_description": standard_description or "",
                    })
                    .execute()
                )
            except Exception as e:
                if _is_unique_violation(e):
                    raise SkuMappingExistsError(standard_sku)
                raise DatabaseError("insert", str(e))
            mapping = result.data[0]
        else:
            mapping = existing

        mapping_id = mapping["id"]
        description_changed = (
            not created
            and bool(standard_description)
            and standard_description != mapping["standard_description"]
        )

        snapshot: list[dict] = []
        try:
            snapshot = self._fetch_variations([mapping_id]).get(mapping_id, [])
            stored = {(r["customer_id"], r["variation_sku"]): r["source"] for r in snapshot}

            # Later rows for the same spelling win
            wanted: dict[tuple[int, str], str] = {}
            for v in variations:
                wanted[(v.customer_id, v.variation_sku)] = v.source

            now = _now()
            rows = [
                {
                    "mapping_id": mapping_id,
                    "customer_id": customer_id,
                    "variation_sku": variation_sku,
                    "source": source,
                    "updated_at": now,
                }
                for (customer_id, variation_sku), source in wanted.items()
                if stored.get((customer_id, variation_sku)) != source
            ]

            if rows:
                self.db.table(self.variations_table).upsert(
                    rows, on_conflict=VARIATION_CONFLICT_KEY
                ).execute()

            if description_changed or (rows and not created):
                mapping_patch = {"updated_at": now}
                if description_changed:
                    mapping_patch["standard_description"] = standard_description
                self.db.table(self.mappings_table).update(
                    mapping_patch
                ).eq("id", mapping_id).execute()

        except Exception as e:
            logger.error(
                "upsert_sku_mapping_group_failed",
                standard_sku=standard_sku,
                error=str(e)
            )
            if created:
                self._rollback_mapping_insert(mapping_id)
            else:
                self._restore_variations(mapping_id, snapshot)
            if isinstance(e, AppError):
                raise
            raise DatabaseError("upsert", str(e))

        return ImportGroupOutcome(
            mapping_id=mapping_id,
            created=created,
            updated=not created and (description_changed or bool(rows)),
            variations_written=len(rows)
        )


# Singleton instance for convenience
_sku_mapping_service: Optional[SkuMappingService] = None


def get_sku_mapping_service() -> SkuMappingService:
    """Get or create SkuMappingService instance."""
    global _sku_mapping_service
    if _sku_mapping_service is None:
        _sku_mapping_service = SkuMappingService()
    return _sku_mapping_service
