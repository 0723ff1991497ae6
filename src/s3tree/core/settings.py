"""Validated engine settings handed to the browser by its owner."""

from __future__ import annotations

from dataclasses import dataclass

from s3tree.constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_LISTING_STRATEGY,
    DEFAULT_PAGE_SIZE,
    DEFAULT_SCAN_WORKERS,
    LISTING_STRATEGY_NATIVE,
    LISTING_STRATEGY_SLICE,
    MAX_NAME_PROBES,
)

LISTING_STRATEGIES = (LISTING_STRATEGY_NATIVE, LISTING_STRATEGY_SLICE)


@dataclass(frozen=True)
class EngineSettings:
    page_size: int = DEFAULT_PAGE_SIZE  # 0 lists a whole folder as one page
    concurrency: int = DEFAULT_CONCURRENCY
    scan_workers: int = DEFAULT_SCAN_WORKERS
    listing_strategy: str = DEFAULT_LISTING_STRATEGY
    max_name_probes: int = MAX_NAME_PROBES

    def __post_init__(self) -> None:
        if self.page_size < 0:
            raise ValueError("page_size cannot be negative")
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if self.scan_workers < 1:
            raise ValueError("scan_workers must be at least 1")
        if self.listing_strategy not in LISTING_STRATEGIES:
            raise ValueError(
                f"listing_strategy must be one of {', '.join(LISTING_STRATEGIES)}, "
                f"got {self.listing_strategy!r}"
            )
        if self.max_name_probes < 1:
            raise ValueError("max_name_probes must be at least 1")
