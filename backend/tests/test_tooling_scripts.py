from __future__ import annotations

import json
from pathlib import Path

import pytest

from scripts.validate_osm_coverage import build_parser, main, validate

SAMPLE = Path(__file__).parent / "fixtures" / "berkeley_sample.osm"


def test_validate_parser_defaults() -> None:
    args = build_parser().parse_args(["--source", str(SAMPLE)])
    assert args.source == SAMPLE
    assert args.min_nodes == 1
    assert args.max_place_dist_miles == 1.0


def test_validate_reports_sample_extract() -> None:
    report = validate(source=SAMPLE, min_nodes=1, max_place_dist_miles=1.0)
    assert report["nodes"] == 5
    assert report["edges"] == 4
    assert report["places"] == 3
    assert report["components"] == 1
    assert report["largest_component_nodes"] == 5
    assert report["largest_component_ratio"] == 1.0
    # "Top Dog" at node 8 sits 0.005 deg of latitude north of node 9.
    assert report["worst_place_nearest_node_miles"] == pytest.approx(0.3458, abs=0.01)
    assert report["coverage_passed"] is True


def test_validate_fails_closed_on_thresholds() -> None:
    with pytest.raises(RuntimeError, match="node count too low"):
        validate(source=SAMPLE, min_nodes=50, max_place_dist_miles=1.0)
    with pytest.raises(RuntimeError, match="Place coverage check failed"):
        validate(source=SAMPLE, min_nodes=1, max_place_dist_miles=0.01)


def test_validate_main_prints_json(capsys) -> None:
    main(["--source", str(SAMPLE), "--max-place-dist-miles", "2.5"])
    payload = json.loads(capsys.readouterr().out)
    assert payload["source"] == str(SAMPLE)
    assert payload["coverage_passed"] is True
