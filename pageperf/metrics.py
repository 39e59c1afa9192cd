from dataclasses import dataclass, field
from enum import Enum


class Failure(str, Enum):
    """Why a metric could not be measured. The value is the exported sentinel."""

    NOT_AVAILABLE = "N/A"
    DID_NOT_FINISH = "DNF"


NUMERIC_FIELDS = (
    "dom_content_loaded_ms",
    "load_ms",
    "dom_content_loaded_wall_ms",
    "load_wall_ms",
    "transferred_bytes",
    "same_origin_bytes",
    "cross_origin_bytes",
    "transferred_resources",
    "page_size_mb",
    "dom_element_count",
)

# Export names, in output order
EXPORT_NAMES = {
    "dom_content_loaded_ms": "domContentLoadedTime_ms",
    "load_ms": "pageLoadTime_ms",
    "dom_content_loaded_wall_ms": "domContentLoadedWallTime_ms",
    "load_wall_ms": "loadWallTime_ms",
    "transferred_bytes": "totalTransferred_bytes",
    "same_origin_bytes": "totalSameOriginTransferred_bytes",
    "cross_origin_bytes": "totalCrossOriginTransferred_bytes",
    "transferred_resources": "totalTransferredResources",
    "page_size_mb": "pageSize_MB",
    "dom_element_count": "domElementCount",
    "resolved_url": "actualPage",
    "detected_link": "otherPage",
    "link_found": "linkFound",
}


def round2(value: float) -> float:
    return round(float(value), 2)


@dataclass(frozen=True)
class TrialResult:
    """
    Outcome of one timed page visit.

    Fields:
        url                        : The URL that was requested.
        label                      : Trial label, e.g. "iter-1" or "other-iter-2".
        dom_content_loaded_ms      : domContentLoadedEventEnd - startTime (Navigation Timing).
        load_ms                    : loadEventEnd - startTime (Navigation Timing).
        dom_content_loaded_wall_ms : Wall clock from goto() until the navigation committed.
        load_wall_ms               : Wall clock from goto() until the load state was reached.
        transferred_bytes          : Bytes of all counted responses.
        same_origin_bytes          : Bytes of responses on the requested host.
        cross_origin_bytes         : Bytes of responses on other hosts.
        transferred_resources      : Number of counted responses.
        page_size_mb               : transferred_bytes in MiB.
        dom_element_count          : document.querySelectorAll('*').length after load.
        resolved_url               : page.url after load (after redirects).
        detected_link              : Absolute URL of the secondary page candidate, or None.
        link_found                 : Whether detected_link was found.
        failure                    : Set when the whole trial failed; every field is then
                                     exported as this sentinel.
        error                      : Error message of a failed trial.

    A numeric field left as None on a successful trial is exported as "N/A".
    """
    url: str
    label: str
    dom_content_loaded_ms: float | None = None
    load_ms: float | None = None
    dom_content_loaded_wall_ms: float | None = None
    load_wall_ms: float | None = None
    transferred_bytes: int | None = None
    same_origin_bytes: int | None = None
    cross_origin_bytes: int | None = None
    transferred_resources: int | None = None
    page_size_mb: float | None = None
    dom_element_count: int | None = None
    resolved_url: str | None = None
    detected_link: str | None = None
    link_found: bool = False
    failure: Failure | None = None
    error: str | None = None

    @classmethod
    def failed(cls, url: str, label: str, failure: Failure, error: str | None = None) -> "TrialResult":
        return cls(url=url, label=label, failure=failure, error=error)

    @property
    def ok(self) -> bool:
        return self.failure is None

    def value(self, name: str):
        """Numeric value of a field, or None when the trial failed or the field is missing."""
        if self.failure is not None:
            return None
        return getattr(self, name)

    def sentinel(self) -> Failure:
        return self.failure or Failure.NOT_AVAILABLE

    def export_value(self, name: str):
        """Field value as written to the output files: a number, a string, a bool, or a sentinel."""
        if name == "link_found":
            return bool(self.link_found) if self.ok else False
        v = self.value(name)
        if v is None:
            return self.sentinel().value
        return v

    def to_dict(self) -> dict:
        out = {EXPORT_NAMES[name]: self.export_value(name) for name in EXPORT_NAMES}
        if self.error:
            out["error"] = self.error
        return out


@dataclass(frozen=True)
class SiteSummary:
    """
    Aggregated view of one target: its primary trials, and the trials of the
    detected secondary page when one was found on the final primary trial.
    """
    site_url: str
    actual_site_url: str
    metrics: tuple[TrialResult, ...]
    other_url: str | None = None
    other_metrics: tuple[TrialResult, ...] = ()
    summary: dict = field(default_factory=dict)
    other_summary: dict = field(default_factory=dict)
    dataset: str | None = None

    @property
    def link_found(self) -> bool:
        return self.other_url is not None

    def to_dict(self) -> dict:
        return {
            "siteUrl": self.site_url,
            "actualSiteUrl": self.actual_site_url,
            "otherPage": self.other_url or Failure.NOT_AVAILABLE.value,
            "metrics": [t.to_dict() for t in self.metrics],
            "otherMetrics": [t.to_dict() for t in self.other_metrics],
            "summary": dict(self.summary),
            "otherSummary": dict(self.other_summary),
        }
