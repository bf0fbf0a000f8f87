"""Auction, ad unit, and bidder records owned by the auction store."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum


class AdUnitStatus(str, Enum):
    RUNNING = "running"
    FINISHED = "finished"


class BidderStatus(str, Enum):
    REQUESTED = "requested"
    BID = "bid"
    NO_BID = "noBid"
    TIMEOUT = "timeout"


class ConsentState(IntEnum):
    NO_CONSENT = 0
    CONSENT = 1
    # Kept for wire compatibility; the classifier never produces it.
    SOME_CONSENT = 2
    UNDEFINED = 3


class EventKind(str, Enum):
    AUCTION = "a"
    IMPRESSION = "i"
    BID_AFTER_TIMEOUT = "bat"


@dataclass
class Size:
    width: int = 0
    height: int = 0


@dataclass
class Bidder:
    bidder_code: str
    request_start_time: int
    source: str = "client"
    response_id: str | None = None
    response_finish_time: int = 0
    status: BidderStatus = BidderStatus.REQUESTED
    cpm: float = -1
    size: Size = field(default_factory=Size)
    media_type: str = "-"
    is_after_timeout: bool = False


@dataclass
class AdUnit:
    code: str
    path: str | None
    sizes: list[str]
    start_time: int
    timeout_ms: int
    finish_time: int = 0
    status: AdUnitStatus = AdUnitStatus.RUNNING
    bidders: dict[str, Bidder] = field(default_factory=dict)
    auction_id: str | None = None
    consent_state: ConsentState | None = None

    @property
    def is_finished(self) -> bool:
        return self.status is AdUnitStatus.FINISHED


@dataclass
class Auction:
    id: str
    start_time: int
    timeout_ms: int
    finish_time: int = 0
    consent_state: ConsentState | None = None
    ad_units: dict[str, AdUnit] = field(default_factory=dict)

    @property
    def is_finished(self) -> bool:
        return self.finish_time > 0


@dataclass
class ImpressionSnapshot:
    ad_unit: AdUnit
    ad_unit_code: str
    ad_unit_path: str | None
    bidder_code: str
    cpm: float
    size: Size
    media_type: str


@dataclass
class BidAfterTimeoutSnapshot:
    ad_unit: AdUnit
    ad_unit_code: str
    ad_unit_path: str | None
    bidder_code: str
    cpm: float
    size: Size
    media_type: str
    request_timestamp: int | None
    response_timestamp: int | None
    is_after_timeout: bool = True
