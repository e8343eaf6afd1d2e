from datetime import datetime, timedelta, timezone

from hypothesis import given, strategies as st

from openprs.models.domain import (
    ActivityRecord,
    ActorRole,
    AnalysisResult,
    DecisionInputs,
    EventSource,
    FileChange,
    FileStatus,
    PRClassification,
    PRType,
    PullRequestInfo,
)
from openprs.services.categorizer import categorize_result
from openprs.services.classification import classify_pr_type
from openprs.services.decision import decide
from openprs.services.timeline import build_timeline

LOGINS = ["editor1", "editor2", "alice", "bob", "carol", "dependabot[bot]", "eth-bot[bot]"]
EDITORS = frozenset({"editor1", "editor2"})
AUTHORS = frozenset({"alice", "bob"})
EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)
NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _stamp(offset_hours: int | None) -> str | None:
    if offset_hours is None:
        return None
    return (EPOCH + timedelta(hours=offset_hours)).isoformat()


activity_records = st.builds(
    lambda login, source, primary, fallback: ActivityRecord(
        actor_login=login,
        source=source,
        timestamp=_stamp(primary),
        fallback_timestamp=_stamp(fallback),
    ),
    st.sampled_from(LOGINS + [None]),
    st.sampled_from([source for source in EventSource if source is not EventSource.PR_OPENED]),
    st.one_of(st.none(), st.integers(min_value=0, max_value=48)),
    st.one_of(st.none(), st.integers(min_value=0, max_value=48)),
)

file_changes = st.builds(
    FileChange,
    filename=st.sampled_from(
        ["EIPS/eip-1.md", "EIPS/eip-4844.md", "ERCS/erc-20.md", "website/index.html", "README.md", "assets/x.png"]
    ),
    status=st.sampled_from(list(FileStatus)),
    preamble_status_changed_only=st.booleans(),
)

titles = st.sampled_from(
    ["", "Fix typo", "CI: pin", "Move to Final", "Update website", "Bump deps", "Clarify rationale", "status"]
)


def _inputs(records, files, title, opener="alice", draft=False) -> DecisionInputs:
    return DecisionInputs(
        pr=PullRequestInfo(
            number=7,
            title=title,
            opener_login=opener,
            created_at="2024-01-01T00:00:00Z",
            is_draft=draft,
        ),
        records=records,
        file_changes=files,
        editors=EDITORS,
        authors=AUTHORS,
    )


@given(st.lists(activity_records, max_size=12), st.randoms())
def test_decision_is_order_invariant(records, rnd):
    shuffled = list(records)
    rnd.shuffle(shuffled)
    first = decide(_inputs(records, [], "Clarify rationale"), now=NOW)
    second = decide(_inputs(shuffled, [], "Clarify rationale"), now=NOW)
    assert first.model_dump_json() == second.model_dump_json()


@given(st.lists(activity_records, max_size=12), st.lists(file_changes, max_size=4), titles, st.booleans())
def test_decision_is_idempotent(records, files, title, draft):
    inputs = _inputs(records, files, title, draft=draft)
    assert decide(inputs, now=NOW).model_dump_json() == decide(inputs, now=NOW).model_dump_json()


@given(st.lists(activity_records, max_size=12))
def test_timeline_excludes_bots_and_unknowns(records):
    timeline = build_timeline(records, EDITORS, AUTHORS, "alice", "2024-01-01T00:00:00Z")
    assert all(not event.actor.endswith("[bot]") for event in timeline)
    assert all(event.role in (ActorRole.EDITOR, ActorRole.AUTHOR) for event in timeline)
    assert [event.timestamp for event in timeline] == sorted(event.timestamp for event in timeline)
    for event in timeline:
        if event.actor.lower() in EDITORS:
            assert event.role is ActorRole.EDITOR


@given(
    st.booleans(),
    st.sampled_from(list(PRType)),
    st.floats(min_value=0, max_value=400, allow_nan=False),
    st.floats(min_value=0, max_value=400, allow_nan=False),
)
def test_staleness_is_monotonic(needs_attention, pr_type, low, high):
    low, high = sorted((low, high))
    analysis = AnalysisResult(needs_editor_attention=needs_attention, reason="r")
    classification = PRClassification(type=pr_type, opened_by_preamble_author=True)
    if categorize_result(analysis, classification, low).subcategory == "Stagnant":
        assert categorize_result(analysis, classification, high).subcategory == "Stagnant"


@given(st.booleans(), st.booleans(), st.lists(file_changes, max_size=5), titles, st.one_of(st.none(), titles))
def test_classifier_always_returns_one_label(draft, typo, files, title, body):
    result = classify_pr_type(draft, typo, files, title, body)
    assert result.type in set(PRType)
    if draft:
        assert result.type is PRType.DRAFT
