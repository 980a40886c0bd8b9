from __future__ import annotations

import pytest

from enforcesync.domain.resolution import jaro, jaro_winkler, name_similarity


def test_jaro_reference_values() -> None:
    assert jaro("MARTHA", "MARHTA") == pytest.approx(0.9444, abs=1e-4)
    assert jaro("DIXON", "DICKSONX") == pytest.approx(0.7667, abs=1e-4)


def test_jaro_winkler_rewards_common_prefix() -> None:
    assert jaro_winkler("MARTHA", "MARHTA") == pytest.approx(0.9611, abs=1e-4)
    assert jaro_winkler("DIXON", "DICKSONX") == pytest.approx(0.8133, abs=1e-4)


def test_degenerate_inputs() -> None:
    assert jaro_winkler("acme", "acme") == 1.0
    assert jaro_winkler("", "acme") == 0.0
    assert jaro("abc", "xyz") == 0.0


def test_name_similarity_ignores_suffix_spelling() -> None:
    assert name_similarity("Acme Waste Limited", "ACME WASTE LTD.") == 1.0
    assert name_similarity("Acme Waste Ltd", "Zenith Recycling Ltd") < 0.85
