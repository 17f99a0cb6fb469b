import os

import pytest

from sagecore.config import pricing
from sagecore.core.cost import estimate_cost, format_cost
from sagecore.core.models import Usage


def test_default_model_cost():
    cost = estimate_cost(Usage(input_tokens=1_000_000, output_tokens=1_000_000), "claude-opus-4-6")
    assert cost == pytest.approx(90.0)


def test_small_exchange_formats_to_four_decimals():
    cost = estimate_cost(Usage(input_tokens=100, output_tokens=20), "claude-opus-4-6")
    assert cost == pytest.approx(0.003)
    assert format_cost(cost) == "$0.0030"


def test_unknown_model_uses_default_rates(tmp_path):
    missing = str(tmp_path / "absent.yaml")
    cost = estimate_cost(Usage(input_tokens=1_000_000, output_tokens=0), "some-future-model", pricing_path=missing)
    assert cost == pytest.approx(15.0)


def test_pricing_file_overrides_and_reloads_on_change(tmp_path):
    path = tmp_path / "pricing.yaml"
    path.write_text("models:\n  tiny-model:\n    input: 1.0\n    output: 2.0\n", encoding="utf-8")
    usage = Usage(input_tokens=1_000_000, output_tokens=1_000_000)
    assert estimate_cost(usage, "tiny-model", pricing_path=str(path)) == pytest.approx(3.0)
    # defaults survive the merge
    assert estimate_cost(usage, "claude-opus-4-6", pricing_path=str(path)) == pytest.approx(90.0)

    path.write_text("models:\n  tiny-model:\n    input: 10.0\n    output: 20.0\n", encoding="utf-8")
    stat = path.stat()
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000))
    assert estimate_cost(usage, "tiny-model", pricing_path=str(path)) == pytest.approx(30.0)


def test_pricing_file_must_be_mapping(tmp_path):
    path = tmp_path / "pricing.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError):
        pricing.load_pricing(str(path))
