from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, write_to_textfile


class RunMetrics:
    """
    Prometheus metrics of one generator run.

    Each run owns its registry, so repeated runs in one process (tests, the
    ``generate`` + variant combination) never share or leak samples.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.source_directories = Gauge(
            "slngen_source_directories",
            "Directories holding at least one source file",
            registry=self.registry,
        )
        self.source_files = Gauge(
            "slngen_source_files",
            "Source files found by the scan",
            registry=self.registry,
        )
        self.modules = Gauge(
            "slngen_modules",
            "Module declarations loaded",
            registry=self.registry,
        )
        self.unresolved_directories = Gauge(
            "slngen_unresolved_directories",
            "Source directories without an owning project",
            registry=self.registry,
        )
        self.scan_seconds = Gauge(
            "slngen_scan_duration_seconds",
            "Wall time of the filesystem scan",
            registry=self.registry,
        )
        self.files_written = Counter(
            "slngen_files_written",
            "Descriptor files written",
            ["kind"],
            registry=self.registry,
        )
        self.variant_descriptors = Counter(
            "slngen_variant_descriptors",
            "Variant descriptors by outcome",
            ["outcome"],
            registry=self.registry,
        )

    def record_written(self, kind: str, count: int = 1) -> None:
        if count:
            self.files_written.labels(kind=kind).inc(count)

    def record_variant(self, generated: int, skipped: int) -> None:
        self.variant_descriptors.labels(outcome="generated").inc(generated)
        self.variant_descriptors.labels(outcome="skipped").inc(skipped)

    def snapshot(self) -> Dict[str, float]:
        """Flat ``name{labels}`` -> value view, for logs and tests."""
        out: Dict[str, float] = {}
        for metric in self.registry.collect():
            for sample in metric.samples:
                if sample.name.endswith("_created"):
                    continue
                labels = ",".join(f"{k}={v}" for k, v in sorted(sample.labels.items()))
                key = f"{sample.name}{{{labels}}}" if labels else sample.name
                out[key] = sample.value
        return out

    def write_textfile(self, path: Path) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        write_to_textfile(str(path), self.registry)
