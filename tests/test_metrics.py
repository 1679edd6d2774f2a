from __future__ import annotations

from slngen.core.observability import RunMetrics


def test_snapshot_flattens_labels():
    metrics = RunMetrics()
    metrics.modules.set(4)
    metrics.record_written("descriptor", 3)
    metrics.record_written("descriptor", 0)
    metrics.record_variant(generated=2, skipped=5)

    snap = metrics.snapshot()
    assert snap["slngen_modules"] == 4.0
    assert snap["slngen_files_written_total{kind=descriptor}"] == 3.0
    assert snap["slngen_variant_descriptors_total{outcome=generated}"] == 2.0
    assert snap["slngen_variant_descriptors_total{outcome=skipped}"] == 5.0


def test_runs_do_not_share_samples():
    first = RunMetrics()
    first.record_written("descriptor", 3)
    second = RunMetrics()
    assert "slngen_files_written_total{kind=descriptor}" not in second.snapshot()


def test_textfile_output(tmp_path):
    metrics = RunMetrics()
    metrics.source_files.set(12)
    metrics.record_written("variant", 2)

    path = tmp_path / "metrics" / "slngen.prom"
    metrics.write_textfile(path)

    text = path.read_text(encoding="utf-8")
    assert "# TYPE slngen_source_files gauge" in text
    assert "slngen_source_files 12.0" in text
    assert 'slngen_files_written_total{kind="variant"} 2.0' in text
