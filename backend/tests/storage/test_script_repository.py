"""
Tests for ScriptRepository
"""

import pytest

from app.core.exceptions import InvalidStateError, NotFoundError
from app.models import GateDecision, RejectionCategory, Scene, ScriptStatus, SourceType
from app.services.infrastructure.storage import ScriptRepository


@pytest.fixture
def repo(tmp_path):
    return ScriptRepository(tmp_path)


def _create(repo, user_id="user-1", item_id="item-1", **overrides):
    fields = dict(
        user_id=user_id,
        item_id=item_id,
        source_type=SourceType.NEWS,
        source_item_id="src-1",
        title="Ocean cleanup",
        scenes=[Scene(id=1, label="hook", text="Hook")],
        full_script="Hook",
        format_id="explainer",
        format_name="Explainer",
        estimated_duration=60,
        initial_score=80,
        final_score=80,
        hook_score=80,
        structure_score=80,
        emotional_score=80,
        cta_score=80,
        gate_decision=GateDecision.NEEDS_REVIEW,
        gate_confidence=0.7,
    )
    fields.update(overrides)
    return repo.create(**fields)


class TestReviewTransitions:
    """Test suite for approve / reject / revision state changes"""

    def test_new_script_is_pending(self, repo):
        script = _create(repo)

        assert repo.get(script.id).status is ScriptStatus.PENDING
        assert repo.get_by_item("item-1").id == script.id

    def test_approve_only_pending(self, repo):
        script = _create(repo)
        approved = repo.approve(script.id)

        assert approved.status is ScriptStatus.APPROVED
        assert approved.reviewed_at is not None
        with pytest.raises(InvalidStateError):
            repo.approve(script.id)

    def test_reject_records_category(self, repo):
        script = _create(repo)

        rejected = repo.reject(script.id, RejectionCategory.TOO_LONG, "Way too long")

        assert rejected.status is ScriptStatus.REJECTED
        assert rejected.rejection_category is RejectionCategory.TOO_LONG
        assert rejected.rejection_reason == "Way too long"

    def test_revision_round_trip(self, repo):
        script = _create(repo)

        marked = repo.mark_for_revision(script.id, "shorter please")
        assert marked.status is ScriptStatus.REVISION
        assert marked.revision_count == 1

        updated = repo.update_after_revision(script.id, full_script="New", final_score=90)
        assert updated.status is ScriptStatus.PENDING
        assert updated.full_script == "New"
        assert updated.revision_count == 1
        assert updated.revision_notes is None

    def test_update_after_revision_rejects_identity_fields(self, repo):
        script = _create(repo)

        with pytest.raises(ValueError):
            repo.update_after_revision(script.id, user_id="someone-else")

    def test_reset_revision_clears_count(self, repo):
        script = _create(repo)
        repo.mark_for_revision(script.id, "a")
        repo.mark_for_revision(script.id, "b")

        reset = repo.reset_revision(script.id)

        assert reset.status is ScriptStatus.PENDING
        assert reset.revision_count == 0

    def test_unknown_script_raises(self, repo):
        with pytest.raises(NotFoundError):
            repo.approve("missing")


class TestListing:
    """Test suite for review queue listing"""

    def test_filter_by_status(self, repo):
        pending = _create(repo, item_id="a")
        approved = _create(repo, item_id="b")
        repo.approve(approved.id)
        _create(repo, user_id="user-2", item_id="c")

        queue = repo.list_by_user("user-1", statuses=[ScriptStatus.PENDING])

        assert [s.id for s in queue] == [pending.id]
        assert len(repo.list_by_user("user-1")) == 2


class TestVersions:
    """Test suite for version rows"""

    def _version_fields(self, number, feedback=None):
        return {
            "version_number": number,
            "scenes": [Scene(id=1, text=f"v{number}")],
            "full_script": f"v{number}",
            "final_score": 70 + number,
            "hook_score": 80,
            "structure_score": 80,
            "emotional_score": 80,
            "cta_score": 80,
            "feedback": feedback,
        }

    def test_record_revision_updates_script_and_appends_version(self, repo):
        script = _create(repo)
        repo.mark_for_revision(script.id, "punchier")

        updated, version = repo.record_revision(
            script.id, self._version_fields(1, "punchier"), full_script="v1", final_score=71,
        )

        assert updated.status is ScriptStatus.PENDING
        assert updated.full_script == "v1"
        assert version.title == "Ocean cleanup"
        assert version.feedback == "punchier"
        assert repo.count_versions(script.id) == 1

    def test_versions_listed_newest_first(self, repo):
        script = _create(repo)
        for number in (1, 2, 3, 4):
            repo.create_version(script.id, title="t", **self._version_fields(number))

        assert [v.version_number for v in repo.list_versions(script.id)] == [4, 3, 2, 1]
        assert [v.version_number for v in repo.list_versions(script.id, limit=3)] == [4, 3, 2]
