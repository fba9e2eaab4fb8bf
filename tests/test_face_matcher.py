from __future__ import annotations

import numpy as np
import pytest

from facematch.face.matcher import FaceMatcher, MatcherConfig
from facematch.face.types import FaceMatch, LabeledDescriptor

from fakes import DESCRIPTORS, STRANGER, unit


def _matcher(labels=("user1", "user2", "user3", "user4"), threshold: float = 1.1) -> FaceMatcher:
    refs = [LabeledDescriptor(label, DESCRIPTORS[label]) for label in labels]
    return FaceMatcher(refs, MatcherConfig(distance_threshold=threshold))


def test_exact_descriptor_matches_its_label():
    match = _matcher().find_best_match(DESCRIPTORS["user3"])
    assert match.label == "user3"
    assert match.distance == pytest.approx(0.0, abs=1e-6)
    assert not match.is_unknown


def test_far_descriptor_is_unknown_with_best_distance():
    match = _matcher().find_best_match(STRANGER)
    assert match.is_unknown
    assert match.label == "unknown"
    assert match.distance == pytest.approx(np.sqrt(2.0), abs=1e-5)


def test_distance_equal_to_threshold_is_unknown():
    query = unit(0) + unit(1) * 0.8
    exact = dict(_matcher(labels=("user1",)).distances(query))["user1"]

    at = _matcher(labels=("user1",), threshold=exact).find_best_match(query)
    assert at.is_unknown
    assert at.distance == pytest.approx(exact)

    above = _matcher(labels=("user1",), threshold=exact + 1e-4).find_best_match(query)
    assert above.label == "user1"

    assert _matcher(labels=("user1",), threshold=1.0).find_best_match(unit(1)).is_unknown


def test_query_is_normalized_before_matching():
    match = _matcher().find_best_match(DESCRIPTORS["user2"] * 37.0)
    assert match.label == "user2"
    assert match.distance == pytest.approx(0.0, abs=1e-5)


def test_label_distance_is_mean_over_its_descriptors():
    refs = [
        LabeledDescriptor("a", np.stack([unit(0), unit(1)])),
        LabeledDescriptor("b", unit(2)),
    ]
    matcher = FaceMatcher(refs, MatcherConfig(distance_threshold=2.0))
    dists = dict(matcher.distances(unit(0)))
    assert dists["a"] == pytest.approx(np.sqrt(2.0) / 2.0, abs=1e-5)
    assert dists["b"] == pytest.approx(np.sqrt(2.0), abs=1e-5)
    assert matcher.find_best_match(unit(0)).label == "a"


def test_empty_reference_set_is_rejected():
    with pytest.raises(ValueError):
        FaceMatcher([])


def test_descriptor_length_mismatch_is_rejected():
    with pytest.raises(ValueError):
        FaceMatcher([LabeledDescriptor("a", unit(0, dim=8)), LabeledDescriptor("b", unit(0, dim=4))])
    with pytest.raises(ValueError):
        _matcher().find_best_match(unit(0, dim=4))


def test_labeled_descriptor_is_immutable():
    ref = LabeledDescriptor("user1", DESCRIPTORS["user1"] * 3.0)
    assert ref.descriptors.shape == (1, 8)
    assert float(np.linalg.norm(ref.descriptors[0])) == pytest.approx(1.0)
    with pytest.raises(ValueError):
        ref.descriptors[0, 0] = 5.0


def test_face_match_str_is_box_label():
    assert str(FaceMatch("user1", 0.4321)) == "user1 (0.43)"
    assert str(FaceMatch("unknown", 1.2)) == "unknown (1.20)"
