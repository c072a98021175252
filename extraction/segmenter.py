"""
Batch manifest segmentation.

A batch manifest lists several orders, each introduced by an
"Ordine: <id>" line. The text is split in front of every such boundary so
each order keeps its own boundary line.
"""

import re
from dataclasses import dataclass
from typing import List

from core.observability import get_logger


logger = get_logger(__name__)

ORDER_BOUNDARY = re.compile(r"(?=Ordine:\s*[\d-]+)", re.IGNORECASE)
ORDER_ID = re.compile(r"Ordine:\s*([\d-]+)", re.IGNORECASE)


@dataclass(frozen=True)
class OrderSegment:
    """The text region of one order, with the id read from its boundary."""
    order_id: str
    text: str


def segment_batch(text: str) -> List[OrderSegment]:
    """
    Split a batch manifest into per-order text regions.

    Segments without a boundary token (the header before the first order)
    are discarded, and so is a segment whose id cannot be read back. Order
    is preserved; nothing is merged or invented.

    Args:
        text: Raw text of one batch manifest

    Returns:
        OrderSegment list in source order
    """
    segments: List[OrderSegment] = []
    if not text:
        return segments

    for index, section in enumerate(ORDER_BOUNDARY.split(text)):
        section = section.strip()
        if not section:
            continue

        match = ORDER_ID.match(section)
        if not match:
            logger.debug(
                "Skipped section without order boundary",
                extra_fields={"section_index": index, "preview": section[:60]},
            )
            continue

        order_id = match.group(1).strip("-")
        if not order_id or not any(ch.isdigit() for ch in order_id):
            logger.warning(
                "Dropped order section with unreadable id",
                extra_fields={"section_index": index, "raw_id": match.group(1)},
            )
            continue

        segments.append(OrderSegment(order_id=order_id, text=section))

    logger.debug("Segmented batch manifest", extra_fields={"segments": len(segments)})
    return segments
