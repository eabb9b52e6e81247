from __future__ import annotations

import pytest

from feed import feed_stats, filter_papers, is_same_paper, merge_into_feed, sort_papers
from models import DiseaseTopic, Methodology, PublicationType, StudyType


def test_same_title_same_first_author_is_same_paper(make_paper) -> None:
    a = make_paper(title="Semaglutide and CKD progression", authors=["Smith J"])
    b = make_paper(title="semaglutide and ckd progression.", authors=["Smith J.", "Other B"])

    assert is_same_paper(a, b)


def test_same_title_different_first_author_is_different(make_paper) -> None:
    a = make_paper(title="Semaglutide and CKD progression", authors=["Smith J"])
    b = make_paper(title="Semaglutide and CKD progression", authors=["Nguyen T"])

    assert not is_same_paper(a, b)


def test_long_title_substring_counts_as_match(make_paper) -> None:
    a = make_paper(title="Semaglutide and CKD progression", authors=[])
    b = make_paper(title="Semaglutide and CKD progression: the FLOW trial", authors=["Smith J"])

    assert is_same_paper(a, b)


def test_short_title_substring_does_not_match(make_paper) -> None:
    a = make_paper(title="GLP-1", authors=[])
    b = make_paper(title="GLP-1 in heart failure", authors=[])

    assert not is_same_paper(a, b)


def test_merge_prepends_only_new_papers(make_paper) -> None:
    existing = [make_paper(title="Finerenone in heart failure with preserved EF")]
    duplicate = make_paper(title="Finerenone in heart failure with preserved EF")
    fresh = make_paper(title="Tirzepatide reverses MASH fibrosis")

    merged = merge_into_feed(existing, [duplicate, fresh])

    assert merged == [fresh, existing[0]]


def test_filter_papers_applies_each_facet(make_paper) -> None:
    ckd_trial = make_paper(topic=DiseaseTopic.CKD, study_type=StudyType.CLINICAL_TRIAL)
    cvd_ai = make_paper(topic=DiseaseTopic.CVD, methodology=Methodology.AI_ML, study_type=StudyType.SIMULATED)

    assert filter_papers([ckd_trial, cvd_ai], topics=[DiseaseTopic.CKD]) == [ckd_trial]
    assert filter_papers([ckd_trial, cvd_ai], methodologies=[Methodology.AI_ML]) == [cvd_ai]
    assert filter_papers([ckd_trial, cvd_ai]) == [ckd_trial, cvd_ai]
    assert filter_papers([ckd_trial, cvd_ai], study_types=[]) == []


def test_sort_by_date_and_relevance(make_paper) -> None:
    old_high = make_paper(date="2026-09-20", validation_score=100)
    new_low = make_paper(date="2026-10-15", validation_score=60)

    assert sort_papers([old_high, new_low]) == [new_low, old_high]
    assert sort_papers([new_low, old_high], by="relevance") == [old_high, new_low]

    with pytest.raises(ValueError, match="Unknown sort key"):
        sort_papers([old_high], by="title")


def test_feed_stats_counts(make_paper) -> None:
    papers = [
        make_paper(),
        make_paper(publication_type=PublicationType.PREPRINT, methodology=Methodology.AI_ML, topic=DiseaseTopic.CVD),
        make_paper(study_type=StudyType.HUMAN_COHORT),
    ]

    stats = feed_stats(papers)

    assert stats["total"] == 3
    assert stats["peer_reviewed"] == 2
    assert stats["preprints"] == 1
    assert stats["clinical_trials"] == 2
    assert stats["ai_ml"] == 1
    assert stats["by_topic"] == {"CVD": 1, "CKD": 2}
