"""
SKU detection service.

Resolves raw SKUs from emails, attachments and manual entry to catalog
SKUs. Exact variation matches win; otherwise the closest mapping above the
similarity threshold is suggested.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
import structlog

from config import settings
from models.sku_mapping import SkuMappingResponse, SkuVariationResponse
from models.sku_detection import (
    AutoMapItem,
    AutoMapResponse,
    AutoMapStatus,
    MatchType,
    SkuDetectionResult,
)
from services.sku_mapping_service import SkuMappingService, get_sku_mapping_service
from services.customer_service import CustomerService, get_customer_service
from utils.text_utils import sku_similarity, is_standard_sku_format

logger = structlog.get_logger(__name__)

NO_MATCH_MESSAGE = "No matching SKU found"


@dataclass
class _Candidate:
    mapping: SkuMappingResponse
    confidence: int


def to_confidence(similarity: float) -> int:
    """Similarity (0-1) to a 0-100 confidence, rounding halves up."""
    value = Decimal(str(similarity)) * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class SkuDetectionService:
    """
    Batch SKU resolution against the mapping catalog.

    Read-only: never writes mappings.
    """

    def __init__(
        self,
        mapping_service: Optional[SkuMappingService] = None,
        customer_service: Optional[CustomerService] = None,
        threshold: Optional[float] = None,
        auto_map_confidence: Optional[int] = None
    ):
        self.mappings = mapping_service or get_sku_mapping_service()
        self.customers = customer_service or get_customer_service()
        self.threshold = settings.sku_fuzzy_threshold if threshold is None else threshold
        self.auto_map_confidence = (
            settings.sku_auto_map_confidence
            if auto_map_confidence is None
            else auto_map_confidence
        )

    # ===================
    # MATCHING
    # ===================

    @staticmethod
    def _build_exact_index(
        mappings: list[SkuMappingResponse]
    ) -> dict[str, list[tuple[SkuMappingResponse, SkuVariationResponse]]]:
        """Variation spelling -> (mapping, variation) pairs in catalog order."""
        index: dict[str, list[tuple[SkuMappingResponse, SkuVariationResponse]]] = {}
        for mapping in mappings:
            for variation in mapping.variations:
                index.setdefault(variation.variation_sku, []).append((mapping, variation))
        return index

    @staticmethod
    def _pick_exact(
        hits: list[tuple[SkuMappingResponse, SkuVariationResponse]],
        customer_id: Optional[int]
    ) -> tuple[SkuMappingResponse, SkuVariationResponse]:
        # Prefer the requesting customer's own spelling
        if customer_id is not None:
            for mapping, variation in hits:
                if variation.customer_id == customer_id:
                    return mapping, variation
        return hits[0]

    def _best_fuzzy(
        self,
        sku: str,
        mappings: list[SkuMappingResponse]
    ) -> Optional[_Candidate]:
        """
        Closest mapping for a SKU with no exact match.

        Each mapping contributes its standard SKU score and the score of its
        first variation over the threshold. Ties keep the earlier candidate.
        """
        best: Optional[_Candidate] = None

        for mapping in mappings:
            scores = []

            score = sku_similarity(sku, mapping.standard_sku)
            if score > self.threshold:
                scores.append(score)

            for variation in mapping.variations:
                score = sku_similarity(sku, variation.variation_sku)
                if score > self.threshold:
                    scores.append(score)
                    break

            for score in scores:
                confidence = to_confidence(score)
                if best is None or confidence > best.confidence:
                    best = _Candidate(mapping=mapping, confidence=confidence)

        return best

    # ===================
    # PUBLIC API
    # ===================

    def detect(
        self,
        skus: list[str],
        customer_id: Optional[int] = None
    ) -> list[SkuDetectionResult]:
        """
        Resolve a batch of raw SKUs.

        Args:
            skus: Raw SKUs, compared exactly as given
            customer_id: Customer the SKUs came from, preferred on exact ties

        Returns:
            One SkuDetectionResult per input, same order
        """
        logger.info("detecting_skus", count=len(skus), customer_id=customer_id)

        if not skus:
            return []

        mappings = self.mappings.get_all()
        exact_index = self._build_exact_index(mappings)

        results: list[SkuDetectionResult] = []
        exact_variations: list[SkuVariationResponse] = []

        for sku in skus:
            hits = exact_index.get(sku)
            if hits:
                mapping, variation = self._pick_exact(hits, customer_id)
                exact_variations.append(variation)
                results.append(SkuDetectionResult(
                    original=sku,
                    detected=True,
                    suggested=mapping.standard_sku,
                    description=mapping.standard_description,
                    confidence=100,
                    match_type=MatchType.EXACT,
                    source=variation.source,
                    customer_id=variation.customer_id,
                ))
                continue

            candidate = self._best_fuzzy(sku, mappings)
            if candidate is None:
                results.append(SkuDetectionResult(
                    original=sku,
                    detected=False,
                    message=NO_MATCH_MESSAGE,
                ))
                continue

            results.append(SkuDetectionResult(
                original=sku,
                detected=True,
                suggested=candidate.mapping.standard_sku,
                description=candidate.mapping.standard_description,
                confidence=candidate.confidence,
                match_type=MatchType.FUZZY,
            ))

        if exact_variations:
            names = self.customers.get_names(v.customer_id for v in exact_variations)
            for result in results:
                if result.match_type == MatchType.EXACT:
                    result.customer_name = names.get(result.customer_id)

        detected = sum(1 for r in results if r.detected)
        logger.info(
            "skus_detected",
            count=len(results),
            detected=detected,
            exact=len(exact_variations),
            fuzzy=detected - len(exact_variations)
        )
        return results

    def auto_map(
        self,
        skus: list[str],
        customer_id: Optional[int] = None
    ) -> AutoMapResponse:
        """
        Choose the SKU to store for each ingested item.

        - Detected with confidence >= auto_map_confidence: replaced
        - Already in catalog format: kept
        - Anything else: kept and flagged unresolved

        Args:
            skus: Raw SKUs from the ingested document
            customer_id: Customer the document came from

        Returns:
            AutoMapResponse with one item per input, same order
        """
        logger.info(
            "auto_mapping_skus",
            count=len(skus),
            customer_id=customer_id,
            enabled=settings.sku_detection_enabled
        )

        if settings.sku_detection_enabled:
            detections = self.detect(skus, customer_id)
        else:
            detections = [SkuDetectionResult(original=sku, detected=False) for sku in skus]

        items: list[AutoMapItem] = []
        for sku, detection in zip(skus, detections):
            if (
                detection.detected
                and detection.confidence is not None
                and detection.confidence >= self.auto_map_confidence
            ):
                items.append(AutoMapItem(
                    original=sku,
                    sku=detection.suggested,
                    status=AutoMapStatus.MAPPED,
                    confidence=detection.confidence,
                    description=detection.description,
                ))
            elif is_standard_sku_format(sku):
                items.append(AutoMapItem(
                    original=sku,
                    sku=sku,
                    status=AutoMapStatus.STANDARD,
                ))
            else:
                items.append(AutoMapItem(
                    original=sku,
                    sku=sku,
                    status=AutoMapStatus.UNRESOLVED,
                    confidence=detection.confidence,
                ))

        mapped = sum(1 for i in items if i.status == AutoMapStatus.MAPPED)
        unresolved = sum(1 for i in items if i.status == AutoMapStatus.UNRESOLVED)

        logger.info("skus_auto_mapped", mapped=mapped, unresolved=unresolved)

        return AutoMapResponse(
            data=items,
            mapped_count=mapped,
            unresolved_count=unresolved
        )


# Singleton instance for convenience
_sku_detection_service: Optional[SkuDetectionService] = None


def get_sku_detection_service() -> SkuDetectionService:
    """Get or create SkuDetectionService instance."""
    global _sku_detection_service
    if _sku_detection_service is None:
        _sku_detection_service = SkuDetectionService()
    return _sku_detection_service
