import pytest

from product360.config import DEFAULT_CATEGORIES
from product360.contracts import ArtifactRecord
from product360.readiness import ArtifactReadinessScorer, category_score
from product360.readiness.artifacts import round_half_up


@pytest.fixture
def scorer():
    return ArtifactReadinessScorer(DEFAULT_CATEGORIES)


@pytest.mark.parametrize(
    "published, draft, issues, expected",
    [
        (0, 0, 0, 0),
        (1, 0, 0, 100),
        (2, 1, 0, 67),
        (1, 2, 0, 33),
        (1, 1, 0, 50),
        (1, 0, 1, 50),
        (3, 0, 1, 75),
        (1, 7, 0, 13),  # 12.5 rounds half up
    ],
)
def test_category_score(published, draft, issues, expected):
    assert category_score(published, draft, issues) == expected


def test_round_half_up():
    assert round_half_up(12.5) == 13
    assert round_half_up(66.5) == 67
    assert round_half_up(66.49) == 66
    assert round_half_up(0) == 0


def test_score_carries_label_and_issues(scorer):
    result = scorer.score("forms", 2, 1, ["HO 04: missing edition date"])
    assert result.label == "Forms"
    assert result.published == 2
    assert result.draft == 1
    assert result.total == 3
    assert result.issues == ["HO 04: missing edition date"]
    assert result.score == 50


def test_empty_category_scores_zero(scorer):
    result = scorer.score("ratePrograms", 0, 0)
    assert result.score == 0
    assert result.label == "Rate Programs"


def test_negative_counts_rejected(scorer):
    with pytest.raises(ValueError):
        scorer.score("forms", -1, 0)
    with pytest.raises(ValueError):
        scorer.score("forms", 0, -2)


def test_unknown_category_uses_name_as_label(scorer):
    assert scorer.score("endorsements", 1, 0).label == "endorsements"


def test_score_records_counts_by_status(scorer):
    records = [
        ArtifactRecord(id="f1", category="forms", name="HO 00 03", status="published"),
        ArtifactRecord(id="f2", category="forms", name="HO 04 90", status="scheduled"),
        ArtifactRecord(id="f3", category="forms", name="HO 04 TX", status="draft",
                       issues=["missing edition date"]),
        ArtifactRecord(id="f4", category="forms", status="archived"),
        ArtifactRecord(id="r1", category="rules", status="draft"),
    ]

    result = scorer.score_records("forms", records)

    assert (result.published, result.draft) == (2, 1)
    assert result.issues == ["HO 04 TX: missing edition date"]
    assert result.score == 50


def test_score_all_returns_every_configured_category(scorer):
    records = [
        ArtifactRecord(id="r1", category="rules", status="published"),
        ArtifactRecord(id="x1", category="unconfigured", status="published"),
    ]
    results = scorer.score_all(records)
    assert [r.category for r in results] == ["forms", "rules", "ratePrograms", "tables"]
    assert [r.score for r in results] == [0, 100, 0, 0]


@pytest.mark.parametrize("published", [0, 1, 4])
def test_score_never_rises_with_drafts_or_issues(published):
    for base in range(4):
        assert category_score(published, base + 1, 0) <= category_score(published, base, 0)
        assert category_score(published, 0, base + 1) <= category_score(published, 0, base)
